"""Gemini REST client for the four generation operations."""

import logging
from typing import Any

import httpx

from ..agents import (
    ANALYSIS_PROMPT,
    DESCRIPTION_PROMPT,
    SUGGESTION_SCHEMA,
    build_suggestion_prompt,
)
from ..config import GeminiConfig
from ..exceptions import InsufficientResultsError, NoImageProducedError, UpstreamError
from ..models import EncodedImage, StyleIdea
from ..utils import clean_description, parse_json_list

logger = logging.getLogger(__name__)

# Finish reasons that mean the model refused to produce content
BLOCKED_FINISH_REASONS = {"SAFETY", "IMAGE_SAFETY", "IMAGE_OTHER", "PROHIBITED_CONTENT"}


class GeminiClient:
    """Client for Google's Gemini ``generateContent`` API.

    Each operation is a single request with no retry. The client keeps no
    per-call state, so operations may run concurrently.
    """

    def __init__(
        self,
        api_key: str | None,
        config: GeminiConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.config = config or GeminiConfig()
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.request_timeout)
        return self._client

    async def check_connection(self) -> bool:
        """Verify the API is reachable and the key is accepted."""
        if not self.api_key:
            return False
        try:
            response = await self.client.get(
                f"{self.config.base_url}/models",
                headers=self._headers(),
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def analyze_features(self, image: EncodedImage) -> str:
        """Describe the facial attributes relevant to choosing a hairstyle."""
        data = await self._generate(
            self.config.analysis_model,
            parts=[image.to_inline_part(), {"text": ANALYSIS_PROMPT}],
            context="analyze_features",
        )
        return self._extract_text(data, "analyze_features")

    async def suggest_styles(self, feature_summary: str, count: int) -> list[StyleIdea]:
        """Suggest ``count`` named hairstyles for the analyzed features.

        Raises:
            InsufficientResultsError: If fewer than ``count`` distinct
                suggestions come back.
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        data = await self._generate(
            self.config.suggestion_model,
            parts=[{"text": build_suggestion_prompt(feature_summary, count)}],
            context="suggest_styles",
            generation_config={
                "responseMimeType": "application/json",
                "responseSchema": SUGGESTION_SCHEMA,
                "thinkingConfig": {"thinkingBudget": self.config.thinking_budget},
            },
        )
        text = self._extract_text(data, "suggest_styles")

        ideas: list[StyleIdea] = []
        seen: set[str] = set()
        for item in parse_json_list(text):
            if not isinstance(item, dict):
                continue
            name = str(item.get("styleName") or item.get("name") or "").strip()
            description = clean_description(str(item.get("description") or ""))
            if not name or not description or name in seen:
                continue
            seen.add(name)
            ideas.append(StyleIdea(name=name, description=description))

        if len(ideas) < count:
            raise InsufficientResultsError(
                f"Expected {count} hairstyle suggestions but received {len(ideas)}.",
                requested=count,
                received=len(ideas),
            )
        return ideas[:count]

    async def describe_image(self, image: EncodedImage) -> str:
        """Describe the hairstyle as it appears in a rendered image."""
        data = await self._generate(
            self.config.description_model,
            parts=[image.to_inline_part(), {"text": DESCRIPTION_PROMPT}],
            context="describe_image",
        )
        return clean_description(self._extract_text(data, "describe_image"))

    async def render_image(self, prompt: str, source_image: EncodedImage) -> EncodedImage:
        """Render ``prompt`` applied to the person in ``source_image``.

        Raises:
            NoImageProducedError: If the response contains no image.
        """
        data = await self._generate(
            self.config.image_model,
            parts=[source_image.to_inline_part(), {"text": prompt}],
            context="render_image",
            generation_config={"responseModalities": ["IMAGE"]},
        )

        finish_reason = None
        for candidate in data.get("candidates", []):
            finish_reason = finish_reason or candidate.get("finishReason")
            for part in candidate.get("content", {}).get("parts", []):
                # Handle both naming conventions
                blob = part.get("inlineData") or part.get("inline_data")
                if blob and blob.get("data"):
                    mime_type = blob.get("mimeType") or blob.get("mime_type") or "image/png"
                    return EncodedImage(mime_type=mime_type, data=blob["data"])

        if finish_reason in BLOCKED_FINISH_REASONS:
            message = f"Image generation was blocked by safety filters ({finish_reason})."
        else:
            message = "Image generation failed. No images were returned."
        raise NoImageProducedError(message, finish_reason=finish_reason)

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self.api_key or ""}

    async def _generate(
        self,
        model: str,
        parts: list[dict[str, Any]],
        context: str,
        generation_config: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST one ``generateContent`` request and return the parsed body."""
        if not self.api_key:
            raise UpstreamError("Gemini API key is not configured (set GEMINI_API_KEY).")

        payload: dict[str, Any] = {"contents": [{"parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        logger.debug("Gemini call starting: %s (model=%s)", context, model)
        try:
            response = await self.client.post(
                self.config.model_url(model),
                headers=self._headers(),
                json=payload,
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Gemini request timed out ({context}).") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini request failed ({context}): {e}") from e

        if response.status_code != 200:
            raise UpstreamError(
                f"Gemini API error {response.status_code} ({context}): {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Gemini returned a non-JSON response ({context}).") from e

        if not isinstance(data, dict):
            raise UpstreamError(
                f"Gemini returned an unexpected response body ({context}): {type(data).__name__}"
            )

        logger.debug("Gemini call finished: %s", context)
        return data

    @staticmethod
    def _extract_text(data: dict[str, Any], context: str) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates", [])
        text = ""
        if candidates:
            for part in candidates[0].get("content", {}).get("parts", []):
                text += part.get("text", "")

        text = text.strip()
        if not text:
            raise UpstreamError(f"No text in Gemini response ({context}).")
        return text
