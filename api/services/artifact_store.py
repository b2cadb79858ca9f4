"""
Ephemeral artifact store.

The edit API takes its inputs as files, so the normalized image and the mask
are written to uniquely named temp files for the duration of one request and
removed afterwards. Names combine the caller's correlation ID with a random
suffix, which keeps concurrent requests apart without any locking.
"""
import logging
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

from core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedArtifact:
    """Handle to a staged file"""

    path: Path
    kind: str
    size: int


class EphemeralArtifactStore:
    """Writes request-scoped PNG files and guarantees their removal"""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.artifact_dir or tempfile.gettempdir())

    def stage(self, data: bytes, kind: str, correlation_id: str) -> StagedArtifact:
        """Write data to a new, uniquely named file under the store root"""
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / f"{kind}-{correlation_id}-{uuid.uuid4().hex}.png"

        # "xb" refuses to overwrite an existing file
        with open(path, "xb") as f:
            f.write(data)

        logger.info(f"Staged {kind} artifact: {path.name} ({len(data)} bytes)")
        return StagedArtifact(path=path, kind=kind, size=len(data))

    def release(self, artifact: Optional[StagedArtifact]) -> None:
        """
        Remove a staged file. Safe to call on None, on a file that was never
        written, or on one that is already gone. Errors are logged, not raised.
        """
        if artifact is None:
            return
        try:
            artifact.path.unlink(missing_ok=True)
            logger.debug(f"Released {artifact.kind} artifact: {artifact.path.name}")
        except OSError as e:
            logger.error(f"Failed to clean up temporary file {artifact.path}: {e}")

    @contextmanager
    def staged_pair(
        self, image_bytes: bytes, mask_bytes: bytes, correlation_id: str
    ) -> Iterator[Tuple[StagedArtifact, StagedArtifact]]:
        """Stage the image and mask together; both are released on every exit path"""
        image_artifact = None
        mask_artifact = None
        try:
            image_artifact = self.stage(image_bytes, "room", correlation_id)
            mask_artifact = self.stage(mask_bytes, "mask", correlation_id)
            yield image_artifact, mask_artifact
        finally:
            self.release(image_artifact)
            self.release(mask_artifact)
            logger.info("Temporary files cleaned up")


# Global store instance
artifact_store = EphemeralArtifactStore()
