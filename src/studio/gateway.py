"""Generation gateway: prompts, response parsing and the mock-data fallback."""
from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Callable, Optional, Tuple, Union

from langsmith import traceable

from .backends import GenerationBackend, create_backend
from .config import Settings, is_usable_credential
from .errors import MalformedResponse, NoImageGenerated
from .mocks import (
    MOCK_DELAYS,
    MOCK_PRODUCT,
    MOCK_SALES_PAGE,
    MOCK_VIDEO_SCRIPT,
    mock_ad_copy,
    mock_lifestyle_image_url,
)
from .models import BENEFIT_ICONS, Language, Platform, Product, SalesPage

LOGGER = logging.getLogger(__name__)

IMPORT_PLACEHOLDER_IMAGES = (
    "https://picsum.photos/seed/gen1/800/800",
    "https://picsum.photos/seed/gen2/800/800",
)

BackendFactory = Callable[[Settings, str], GenerationBackend]


def _parse_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"The {what} response is not valid JSON: {exc}") from exc


class GenerationGateway:
    """One coroutine per generation kind.

    The credential is read through ``credential`` on every call, so a key
    selected mid-session applies to the next request. One backend client is
    kept per key and closed once a different key takes over. Without a usable
    key the gateway returns sample data after a simulated delay.
    """

    def __init__(
        self,
        settings: Settings,
        credential: Optional[Callable[[], Optional[str]]] = None,
        backend_factory: BackendFactory = create_backend,
    ):
        self.settings = settings
        self._credential = credential or (lambda: settings.api_key)
        self._backend_factory = backend_factory
        self._cached: Optional[Tuple[str, GenerationBackend]] = None

    def is_mock_mode(self) -> bool:
        return not is_usable_credential(self._credential())

    async def _backend(self) -> Optional[GenerationBackend]:
        api_key = self._credential()
        if not is_usable_credential(api_key):
            LOGGER.warning("API key not found or is a placeholder. Using mock data.")
            return None
        if self._cached is not None and self._cached[0] == api_key:
            return self._cached[1]

        stale = self._cached
        backend = self._backend_factory(self.settings, api_key)
        self._cached = (api_key, backend)
        if stale is not None:
            LOGGER.info("API key changed; closing the previous %s client", self.settings.provider)
            await stale[1].aclose()
        return backend

    async def aclose(self) -> None:
        if self._cached is not None:
            _, backend = self._cached
            self._cached = None
            await backend.aclose()

    async def _mock(self, kind: str, value: Any) -> Any:
        await asyncio.sleep(MOCK_DELAYS[kind] * self.settings.mock_delay_scale)
        return value

    @traceable(run_type="chain", name="import_product")
    async def import_product(self, url: str, language: Union[Language, str]) -> Product:
        if not url or not url.strip():
            raise ValueError("A product URL is required")
        language = Language(language)

        backend = await self._backend()
        if backend is None:
            return await self._mock("importing", MOCK_PRODUCT)

        prompt = f"""You are an expert dropshipping product importer. Analyze the product at this URL: {url}.
Extract the following information and translate it to {language.value}:
- A compelling product title.
- A detailed and persuasive product description.
- A list of product variations (such as color or size).
- The supplier's price in USD (make a realistic estimate).

IMPORTANT: Respond ONLY with a JSON object in the following format, without markdown or any extra text:
{{"title": "...", "description": "...", "variations": ["...", "..."], "supplierPrice": 0.00}}"""

        text = await backend.complete_json(prompt)
        # The model is never asked for images; the product gets placeholders.
        return Product.from_payload(_parse_json(text, "product import"), images=IMPORT_PLACEHOLDER_IMAGES)

    @traceable(run_type="chain", name="generate_video_script")
    async def generate_video_script(
        self, product: Product, platform: Union[Platform, str], language: Union[Language, str]
    ) -> str:
        platform = Platform(platform)
        language = Language(language)

        backend = await self._backend()
        if backend is None:
            return await self._mock("video", MOCK_VIDEO_SCRIPT)

        prompt = f"""Create a short, punchy and highly engaging video script for a {platform.value} ad for the product "{product.title}".
The script must be written in {language.value}.
Product description: "{product.description}".
Follow the AIDA model (Attention, Interest, Desire, Action).
Describe the scenes, the on-screen text and the voiceover narration.
The goal is to stop the scroll and drive clicks."""

        return await backend.complete_text(prompt)

    @traceable(run_type="chain", name="generate_lifestyle_image")
    async def generate_lifestyle_image(self, product: Product) -> str:
        backend = await self._backend()
        if backend is None:
            return await self._mock("images", mock_lifestyle_image_url())

        prompt = (
            f'Create a photorealistic, high-quality lifestyle image of a person happily using a "{product.title}". '
            "The setting should be modern and aspirational. Show the product in a clear but natural way. "
            "The image should be vibrant and eye-catching."
        )

        data = await backend.complete_image(prompt, aspect_ratio="1:1")
        if not data:
            raise NoImageGenerated(f"No image generated for {product.title!r}")
        return f"data:image/png;base64,{base64.b64encode(data).decode('ascii')}"

    @traceable(run_type="chain", name="generate_ad_copy")
    async def generate_ad_copy(
        self, product: Product, platform: Union[Platform, str], language: Union[Language, str]
    ) -> str:
        platform = Platform(platform)
        language = Language(language)

        backend = await self._backend()
        if backend is None:
            return await self._mock("copy", mock_ad_copy(product.title))

        prompt = f"""Write a persuasive, high-converting ad copy for a {platform.value} post.
The language must be {language.value}.
Product: "{product.title}".
Description: "{product.description}".
Include emojis, a strong hook, the key benefits and a clear call to action."""

        return await backend.complete_text(prompt)

    @traceable(run_type="chain", name="generate_sales_page")
    async def generate_sales_page(self, product: Product, language: Union[Language, str]) -> SalesPage:
        language = Language(language)

        backend = await self._backend()
        if backend is None:
            return await self._mock("page", MOCK_SALES_PAGE)

        icons = ", ".join(f"'{icon}'" for icon in BENEFIT_ICONS)
        prompt = f"""You are an expert direct-response copywriter. Write a complete, high-converting landing page in {language.value} for the product:
Title: "{product.title}"
Description: "{product.description}"

The landing page must include:
1. A powerful, benefit-driven headline.
2. An engaging opening paragraph that names a customer pain point and introduces the product as the solution.
3. Exactly 3 key benefits, each with an icon name (one of {icons}), a title and a short description.
4. A "How It Works" section explaining how easy the product is to use.
5. Exactly 2 realistic customer testimonials, each with a name, the text and a rating from 1 to 5.
6. An urgency/scarcity section that encourages an immediate purchase.
7. A strong, clear call-to-action text.

IMPORTANT: Respond ONLY with a JSON object with the structure below, without markdown or any extra text.
{{
  "headline": "...",
  "opening": "...",
  "benefits": [{{"icon": "...", "title": "...", "text": "..."}}],
  "howItWorks": "...",
  "testimonials": [{{"name": "...", "text": "...", "rating": 5}}],
  "urgency": "...",
  "cta": "..."
}}"""

        text = await backend.complete_json(prompt)
        return SalesPage.from_payload(_parse_json(text, "sales page"))
