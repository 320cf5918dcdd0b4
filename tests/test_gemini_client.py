"""Unit tests for GeminiClient against a mocked HTTP transport."""

import json
import os

import httpx
import pytest

from conftest import make_image_bytes
from hairstyle_studio.config import GeminiConfig
from hairstyle_studio.exceptions import (
    InsufficientResultsError,
    NoImageProducedError,
    UpstreamError,
)
from hairstyle_studio.models import EncodedImage
from hairstyle_studio.services import GeminiClient
from hairstyle_studio.utils import image_codec


PHOTO = EncodedImage(mime_type="image/jpeg", data="cGhvdG8=")


def text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


def make_client(handler, api_key="test-key") -> tuple[GeminiClient, list[httpx.Request]]:
    """Client whose requests are answered by ``handler`` and recorded."""
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return GeminiClient(api_key, GeminiConfig(), http_client=http_client), requests


class TestAnalyzeAndDescribe:
    """Tests for the text-returning operations."""

    @pytest.mark.asyncio
    async def test_analyze_sends_image_and_prompt(self):
        """analyze_features posts the photo inline with the analysis prompt."""
        client, requests = make_client(lambda r: httpx.Response(200, json=text_response("oval face")))

        result = await client.analyze_features(PHOTO)

        assert result == "oval face"
        request = requests[0]
        assert request.url.path.endswith("/models/gemini-2.5-flash:generateContent")
        assert request.headers["x-goog-api-key"] == "test-key"
        parts = json.loads(request.content)["contents"][0]["parts"]
        assert parts[0] == {"inline_data": {"mime_type": "image/jpeg", "data": "cGhvdG8="}}
        assert "facial structure" in parts[1]["text"]

    @pytest.mark.asyncio
    async def test_describe_cleans_text(self):
        """describe_image strips whitespace and double quotes."""
        body = text_response('  A "textured" crop   with a fade  ')
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        result = await client.describe_image(PHOTO)

        assert result == "A 'textured' crop with a fade"

    @pytest.mark.asyncio
    async def test_multiple_text_parts_are_joined(self):
        body = {"candidates": [{"content": {"parts": [{"text": "part one, "}, {"text": "part two"}]}}]}
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        assert await client.analyze_features(PHOTO) == "part one, part two"

    @pytest.mark.asyncio
    async def test_empty_text_raises_upstream_error(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(UpstreamError):
            await client.analyze_features(PHOTO)


class TestSuggestStyles:
    """Tests for suggestion parsing and the result-count contract."""

    @staticmethod
    def suggestions(n: int) -> list[dict]:
        return [{"styleName": f"Style {i}", "description": f"description {i}"} for i in range(n)]

    @pytest.mark.asyncio
    async def test_parses_requested_count(self):
        """Four suggestions come back as four StyleIdeas."""
        body = text_response(json.dumps(self.suggestions(4)))
        client, requests = make_client(lambda r: httpx.Response(200, json=body))

        ideas = await client.suggest_styles("oval face", 4)

        assert [i.name for i in ideas] == ["Style 0", "Style 1", "Style 2", "Style 3"]
        payload = json.loads(requests[0].content)
        assert requests[0].url.path.endswith("/models/gemini-2.5-pro:generateContent")
        assert payload["generationConfig"]["responseMimeType"] == "application/json"
        assert "oval face" in payload["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_fewer_than_requested_raises(self):
        """Fewer suggestions than requested is a contract violation."""
        body = text_response(json.dumps(self.suggestions(3)))
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        with pytest.raises(InsufficientResultsError) as exc_info:
            await client.suggest_styles("oval face", 4)

        assert exc_info.value.requested == 4
        assert exc_info.value.received == 3

    @pytest.mark.asyncio
    async def test_duplicate_names_do_not_count(self):
        """Suggestions sharing a name count once."""
        items = self.suggestions(3) + [{"styleName": "Style 0", "description": "again"}]
        client, _ = make_client(lambda r: httpx.Response(200, json=text_response(json.dumps(items))))

        with pytest.raises(InsufficientResultsError):
            await client.suggest_styles("oval face", 4)

    @pytest.mark.asyncio
    async def test_extra_suggestions_are_dropped(self):
        body = text_response(json.dumps(self.suggestions(6)))
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        ideas = await client.suggest_styles("oval face", 4)

        assert len(ideas) == 4

    @pytest.mark.asyncio
    async def test_code_fenced_json_is_accepted(self):
        text = "```json\n" + json.dumps(self.suggestions(4)) + "\n```"
        client, _ = make_client(lambda r: httpx.Response(200, json=text_response(text)))

        ideas = await client.suggest_styles("oval face", 4)

        assert len(ideas) == 4

    @pytest.mark.asyncio
    async def test_unparseable_json_counts_as_zero(self):
        client, _ = make_client(lambda r: httpx.Response(200, json=text_response("Sorry, no.")))

        with pytest.raises(InsufficientResultsError) as exc_info:
            await client.suggest_styles("oval face", 4)

        assert exc_info.value.received == 0

    @pytest.mark.asyncio
    async def test_count_must_be_positive(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={}))

        with pytest.raises(ValueError):
            await client.suggest_styles("oval face", 0)


class TestRenderImage:
    """Tests for image rendering responses."""

    @pytest.mark.asyncio
    async def test_returns_inline_image(self):
        """The first inline image part becomes the result."""
        body = {"candidates": [{"content": {"parts": [
            {"text": "Here you go"},
            {"inlineData": {"mimeType": "image/png", "data": "aW1hZ2U="}},
        ]}}]}
        client, requests = make_client(lambda r: httpx.Response(200, json=body))

        image = await client.render_image("Generate a front view", PHOTO)

        assert image == EncodedImage(mime_type="image/png", data="aW1hZ2U=")
        payload = json.loads(requests[0].content)
        assert payload["generationConfig"]["responseModalities"] == ["IMAGE"]
        assert requests[0].url.path.endswith("/models/gemini-2.5-flash-image:generateContent")

    @pytest.mark.asyncio
    async def test_snake_case_inline_data_is_accepted(self):
        body = {"candidates": [{"content": {"parts": [
            {"inline_data": {"mime_type": "image/jpeg", "data": "anBn"}},
        ]}}]}
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        image = await client.render_image("prompt", PHOTO)

        assert image.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_no_image_raises(self):
        """A response without image data raises NoImageProducedError."""
        client, _ = make_client(lambda r: httpx.Response(200, json=text_response("I can't")))

        with pytest.raises(NoImageProducedError, match="No images were returned"):
            await client.render_image("prompt", PHOTO)

    @pytest.mark.asyncio
    async def test_safety_block_reports_reason(self):
        body = {"candidates": [{"finishReason": "IMAGE_SAFETY"}]}
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        with pytest.raises(NoImageProducedError) as exc_info:
            await client.render_image("prompt", PHOTO)

        assert exc_info.value.finish_reason == "IMAGE_SAFETY"
        assert "safety" in str(exc_info.value)


class TestTransportErrors:
    """Tests for mapping transport failures to UpstreamError."""

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client, _ = make_client(lambda r: httpx.Response(503, text="overloaded"))

        with pytest.raises(UpstreamError, match="503"):
            await client.analyze_features(PHOTO)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["x"], "just a string", 42])
    async def test_non_object_json_body(self, body):
        """A JSON body that is not an object is an upstream fault."""
        client, _ = make_client(lambda r: httpx.Response(200, json=body))

        with pytest.raises(UpstreamError, match="unexpected response body"):
            await client.analyze_features(PHOTO)

    @pytest.mark.asyncio
    async def test_non_object_json_body_on_render(self):
        client, _ = make_client(lambda r: httpx.Response(200, json=[{"candidates": []}]))

        with pytest.raises(UpstreamError):
            await client.render_image("prompt", PHOTO)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = make_client(handler)

        with pytest.raises(UpstreamError, match="timed out"):
            await client.render_image("prompt", PHOTO)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = make_client(handler)

        with pytest.raises(UpstreamError):
            await client.describe_image(PHOTO)

    @pytest.mark.asyncio
    async def test_missing_api_key_makes_no_request(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={}), api_key=None)

        with pytest.raises(UpstreamError, match="API key"):
            await client.analyze_features(PHOTO)

        assert requests == []


class TestConnection:
    """Tests for check_connection and close."""

    @pytest.mark.asyncio
    async def test_check_connection_ok(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={"models": []}))

        assert await client.check_connection() is True
        assert requests[0].url.path.endswith("/models")

    @pytest.mark.asyncio
    async def test_check_connection_rejected_key(self):
        client, _ = make_client(lambda r: httpx.Response(403, json={}))

        assert await client.check_connection() is False

    @pytest.mark.asyncio
    async def test_check_connection_without_key(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={}), api_key=None)

        assert await client.check_connection() is False
        assert requests == []

    @pytest.mark.asyncio
    async def test_close_releases_http_client(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={}))
        http_client = client.client

        await client.close()

        assert http_client.is_closed


@pytest.mark.skipif(not os.environ.get("GEMINI_API_KEY"), reason="GEMINI_API_KEY not set")
class TestLiveGemini:
    """Tests against the real Gemini API (requires GEMINI_API_KEY).

    Note: These tests use the live models and may be flaky.
    """

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_analyze_real_photo(self):
        """A plain test image still yields some feature text."""
        client = GeminiClient(os.environ["GEMINI_API_KEY"])
        try:
            photo = image_codec.encode(make_image_bytes("JPEG", color="tan", size=(64, 64)))
            summary = await client.analyze_features(photo)
        finally:
            await client.close()

        assert summary.strip()
