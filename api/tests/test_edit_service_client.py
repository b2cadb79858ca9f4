"""
Tests for the OpenAI images.edit wrapper.

The AsyncOpenAI client is replaced by a mock; OpenAI SDK exceptions are
constructed directly so the error mapping is checked against the real types.
"""
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest
from services.edit_service_client import PLANT_EDIT_PROMPT, EditResultReference, EditServiceClient

from conftest import RESULT_URL, openai_images_response
from core.errors import EmptyResult, QuotaExceeded, ServiceError

EDIT_URL = "https://api.openai.com/v1/images/edits"


def status_error(cls, status: int, code: str = None, message: str = "upstream failure"):
    """Build an OpenAI APIStatusError subclass the way the SDK does."""
    request = httpx.Request("POST", EDIT_URL)
    response = httpx.Response(status, request=request)
    body = {"message": message, "type": code, "code": code, "param": None}
    return cls(message, response=response, body=body)


@pytest.fixture
def staged_pair(store):
    with store.staged_pair(b"normalized-image", b"mask-image", "req42") as pair:
        yield pair


@pytest.fixture
def client(mock_openai_client):
    return EditServiceClient(api_key="sk-test", client=mock_openai_client)


class TestEditSuccess:
    @pytest.mark.asyncio
    async def test_returns_reference(self, client, staged_pair):
        image, mask = staged_pair

        reference = await client.edit(image, mask)

        assert reference == EditResultReference(url=RESULT_URL)

    @pytest.mark.asyncio
    async def test_fixed_parameters(self, client, mock_openai_client, staged_pair):
        image, mask = staged_pair

        await client.edit(image, mask)

        kwargs = mock_openai_client.images.edit.call_args.kwargs
        assert kwargs["prompt"] == PLANT_EDIT_PROMPT
        assert kwargs["n"] == 1
        assert kwargs["size"] == "1024x1024"
        assert kwargs["response_format"] == "url"
        assert kwargs["model"] == "dall-e-2"

    @pytest.mark.asyncio
    async def test_sends_staged_file_contents(self, mock_openai_client, staged_pair):
        received = {}

        async def fake_edit(**kwargs):
            received["image"] = kwargs["image"].read()
            received["mask"] = kwargs["mask"].read()
            return openai_images_response(RESULT_URL)

        mock_openai_client.images.edit = AsyncMock(side_effect=fake_edit)
        client = EditServiceClient(api_key="sk-test", client=mock_openai_client)
        image, mask = staged_pair

        await client.edit(image, mask)

        assert received == {"image": b"normalized-image", "mask": b"mask-image"}

    def test_prompt_is_static(self):
        for phrase in ["ONLY in the white areas", "DO NOT change lighting", "on the floor", "Monstera", "perspective"]:
            assert phrase in PLANT_EDIT_PROMPT


class TestEmptyResult:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [openai_images_response(None), openai_images_response("")])
    async def test_missing_url(self, client, mock_openai_client, staged_pair, response):
        mock_openai_client.images.edit.return_value = response

        with pytest.raises(EmptyResult):
            await client.edit(*staged_pair)

    @pytest.mark.asyncio
    async def test_empty_data(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.return_value.data = []

        with pytest.raises(EmptyResult):
            await client.edit(*staged_pair)


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_billing_limit_is_quota_exceeded(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.side_effect = status_error(
            openai.BadRequestError, 400, code="billing_hard_limit_reached", message="Billing hard limit has been reached"
        )

        with pytest.raises(QuotaExceeded) as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == 402
        assert "try again later" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_insufficient_quota_is_quota_exceeded(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.side_effect = status_error(
            openai.RateLimitError, 429, code="insufficient_quota", message="You exceeded your current quota"
        )

        with pytest.raises(QuotaExceeded):
            await client.edit(*staged_pair)

    @pytest.mark.asyncio
    async def test_plain_rate_limit_keeps_upstream_status(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.side_effect = status_error(
            openai.RateLimitError, 429, code="rate_limit_exceeded", message="Too many requests"
        )

        with pytest.raises(ServiceError) as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "cls,status",
        [(openai.BadRequestError, 400), (openai.AuthenticationError, 401), (openai.InternalServerError, 503)],
    )
    async def test_status_errors_keep_upstream_status(self, client, mock_openai_client, staged_pair, cls, status):
        mock_openai_client.images.edit.side_effect = status_error(cls, status, message="Invalid mask")

        with pytest.raises(ServiceError) as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "Invalid mask"

    @pytest.mark.asyncio
    async def test_connection_error_defaults_to_500(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.side_effect = openai.APIConnectionError(request=httpx.Request("POST", EDIT_URL))

        with pytest.raises(ServiceError) as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_timeout_defaults_to_500(self, client, mock_openai_client, staged_pair):
        mock_openai_client.images.edit.side_effect = openai.APITimeoutError(request=httpx.Request("POST", EDIT_URL))

        with pytest.raises(ServiceError) as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == 500


class TestClientConfiguration:
    @pytest.mark.asyncio
    async def test_missing_api_key(self, staged_pair):
        client = EditServiceClient(api_key="")

        with pytest.raises(ServiceError, match="OPENAI_API_KEY") as exc_info:
            await client.edit(*staged_pair)

        assert exc_info.value.status_code == 500

    def test_client_created_lazily_with_key(self):
        with patch("services.edit_service_client.openai.AsyncOpenAI") as async_openai:
            client = EditServiceClient(api_key="sk-test")
            async_openai.assert_not_called()

            client._get_client()
            client._get_client()

        async_openai.assert_called_once()
        assert async_openai.call_args.kwargs["api_key"] == "sk-test"
