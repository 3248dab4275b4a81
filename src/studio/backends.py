"""Adapters for the external generation service.

Each backend offers the three completions the gateway needs (free text, JSON
constrained text, and a single image) and classifies SDK failures into the
studio's error taxonomy before they leave this module.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional, Protocol

import httpx
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import Settings
from .errors import CredentialError, GenerationFailure

LOGGER = logging.getLogger(__name__)

_GEMINI_CREDENTIAL_STATUSES = {"PERMISSION_DENIED", "UNAUTHENTICATED"}
_GEMINI_INVALID_KEY_MARKERS = ("API_KEY_INVALID", "API key not valid")

# gpt-image-1 only renders these canvases
_OPENAI_IMAGE_SIZES = {"1:1": "1024x1024", "3:2": "1536x1024", "2:3": "1024x1536"}


class GenerationBackend(Protocol):
    async def complete_text(self, prompt: str) -> str: ...

    async def complete_json(self, prompt: str) -> str: ...

    async def complete_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]: ...

    async def aclose(self) -> None: ...


def _is_gemini_credential_failure(exc: genai_errors.ClientError) -> bool:
    if exc.code in (401, 403) or exc.status in _GEMINI_CREDENTIAL_STATUSES:
        return True
    detail = f"{exc.message or ''} {exc.details or ''}"
    return any(marker in detail for marker in _GEMINI_INVALID_KEY_MARKERS)


class GeminiBackend:
    """Google Gemini through the ``google-genai`` async client."""

    def __init__(self, api_key: str, text_model: str, image_model: str):
        self.client = genai.Client(api_key=api_key)
        self.text_model = text_model
        self.image_model = image_model

    async def aclose(self) -> None:
        await self.client.aio.aclose()

    async def _generate(self, model: str, prompt: str, config: Optional[types.GenerateContentConfig] = None):
        try:
            return await self.client.aio.models.generate_content(model=model, contents=prompt, config=config)
        except genai_errors.ClientError as exc:
            if _is_gemini_credential_failure(exc):
                raise CredentialError(f"Gemini rejected the credential: {exc}") from exc
            raise GenerationFailure(f"Gemini request failed: {exc}") from exc
        except genai_errors.APIError as exc:
            raise GenerationFailure(f"Gemini request failed: {exc}") from exc
        except httpx.HTTPError as exc:
            raise GenerationFailure(f"Could not reach Gemini: {exc}") from exc

    async def complete_text(self, prompt: str) -> str:
        response = await self._generate(self.text_model, prompt)
        return response.text or ""

    async def complete_json(self, prompt: str) -> str:
        response = await self._generate(
            self.text_model,
            prompt,
            types.GenerateContentConfig(response_mime_type="application/json"),
        )
        return response.text or ""

    async def complete_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]:
        response = await self._generate(
            self.image_model,
            prompt,
            types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
            ),
        )

        # Extract the first inline image from the response
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if part.inline_data and part.inline_data.data:
                    return part.inline_data.data
        return None


class OpenAIBackend:
    """OpenAI chat completions and image generation through ``AsyncOpenAI``."""

    def __init__(self, api_key: str, text_model: str, image_model: str):
        self.client = openai.AsyncOpenAI(api_key=api_key)
        self.text_model = text_model
        self.image_model = image_model

    async def aclose(self) -> None:
        await self.client.close()

    async def _call(self, request):
        try:
            return await request
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise CredentialError(f"OpenAI rejected the credential: {exc}") from exc
        except openai.OpenAIError as exc:
            raise GenerationFailure(f"OpenAI request failed: {exc}") from exc

    async def _chat(self, prompt: str, **kwargs) -> str:
        response = await self._call(
            self.client.chat.completions.create(
                model=self.text_model,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        )
        if response.usage is not None:
            LOGGER.debug("OpenAI completion used %s tokens", response.usage.total_tokens)
        if not response.choices:
            raise GenerationFailure("OpenAI returned no choices")
        return response.choices[0].message.content or ""

    async def complete_text(self, prompt: str) -> str:
        return await self._chat(prompt)

    async def complete_json(self, prompt: str) -> str:
        return await self._chat(prompt, response_format={"type": "json_object"})

    async def complete_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]:
        size = _OPENAI_IMAGE_SIZES.get(aspect_ratio)
        if size is None:
            raise ValueError(f"Unsupported aspect ratio for OpenAI images: {aspect_ratio}")
        response = await self._call(
            self.client.images.generate(model=self.image_model, prompt=prompt, size=size, n=1)
        )
        if not response.data or not response.data[0].b64_json:
            return None
        return base64.b64decode(response.data[0].b64_json)


def create_backend(settings: Settings, api_key: str) -> GenerationBackend:
    if settings.provider == "openai":
        return OpenAIBackend(api_key, settings.text_model, settings.image_model)
    return GeminiBackend(api_key, settings.text_model, settings.image_model)
