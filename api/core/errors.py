"""
Error taxonomy for the plant edit pipeline.

Every failure a request can hit is one of these. Each carries the message
shown to the caller and the HTTP status the route responds with.
"""
from typing import Optional


class PlantEditError(Exception):
    """Base class for pipeline failures"""

    kind = "internal"
    default_status = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status


class DecodeError(PlantEditError):
    """Input image could not be decoded"""

    kind = "decode_error"


class QuotaExceeded(PlantEditError):
    """Edit service reported a billing or quota limit"""

    kind = "quota_exceeded"
    default_status = 402

    def __init__(self, message: str = "OpenAI API billing limit reached. Please try again later."):
        super().__init__(message)


class ServiceError(PlantEditError):
    """Any other edit service failure; keeps the upstream status when there is one"""

    kind = "service_error"

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message, status_code=status)


class EmptyResult(PlantEditError):
    """Edit service succeeded but returned no image reference"""

    kind = "empty_result"

    def __init__(self, message: str = "No image URL received"):
        super().__init__(message)


class FetchError(PlantEditError):
    """Edited image could not be downloaded"""

    kind = "fetch_error"


class ValidationError(PlantEditError):
    """Downloaded image is empty or truncated"""

    kind = "validation_error"
