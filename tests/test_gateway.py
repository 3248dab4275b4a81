from __future__ import annotations

import asyncio
import base64
import time

import pytest

from studio.config import Settings
from studio.errors import CredentialError, MalformedResponse, NoImageGenerated
from studio.gateway import IMPORT_PLACEHOLDER_IMAGES, GenerationGateway
from studio.mocks import MOCK_SALES_PAGE, MOCK_VIDEO_SCRIPT
from studio.models import Language, Platform, Product

from fakes import SALES_PAGE_JSON, FakeBackend, backend_factory

PRODUCT = Product(title="Bottle", description="Keeps water cold.", supplier_price=12.5)


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key="test-key", mock_delay_scale=0.0)


def test_import_without_credential_returns_mock_product():
    gateway = GenerationGateway(Settings(api_key=None, mock_delay_scale=0.01))

    start = time.monotonic()
    product = asyncio.run(gateway.import_product("https://store.example/item/123", Language.PORTUGUESE))

    assert product.title == "Smartwatch Pro X"
    assert product.supplier_price == pytest.approx(45.50)
    assert time.monotonic() - start < 1.0


def test_placeholder_credential_selects_mock_mode():
    backend = FakeBackend()
    gateway = GenerationGateway(
        Settings(api_key="placeholder", mock_delay_scale=0.0), backend_factory=backend_factory(backend)
    )

    script = asyncio.run(gateway.generate_video_script(PRODUCT, Platform.TIKTOK, Language.ENGLISH))

    assert gateway.is_mock_mode()
    assert script == MOCK_VIDEO_SCRIPT
    assert backend.calls == []


def test_credential_is_read_on_every_call(settings: Settings):
    keys = [None]
    backend = FakeBackend(json_text=SALES_PAGE_JSON)
    gateway = GenerationGateway(settings, credential=lambda: keys[-1], backend_factory=backend_factory(backend))

    first = asyncio.run(gateway.generate_sales_page(PRODUCT, Language.ENGLISH))
    keys.append("fresh-key")
    second = asyncio.run(gateway.generate_sales_page(PRODUCT, Language.ENGLISH))

    assert first == MOCK_SALES_PAGE
    assert second.headline == "Hydration, upgraded"
    assert len(backend.calls) == 1


def test_import_requires_url(settings: Settings):
    gateway = GenerationGateway(settings, backend_factory=backend_factory(FakeBackend()))

    with pytest.raises(ValueError):
        asyncio.run(gateway.import_product("  ", Language.ENGLISH))


def test_import_parses_json_and_uses_placeholder_images(settings: Settings):
    backend = FakeBackend()
    gateway = GenerationGateway(settings, backend_factory=backend_factory(backend))

    product = asyncio.run(gateway.import_product("https://store.example/item/9", Language.SPANISH))

    assert product.title == "Garrafa Térmica Inox"
    assert product.variations == ("Preto", "Branco")
    assert product.supplier_price == pytest.approx(12.5)
    assert product.images == IMPORT_PLACEHOLDER_IMAGES
    kind, prompt = backend.calls[0]
    assert kind == "json"
    assert "https://store.example/item/9" in prompt
    assert "Spanish" in prompt
    assert '"supplierPrice"' in prompt


def test_import_with_unparseable_json_is_malformed(settings: Settings):
    gateway = GenerationGateway(
        settings, backend_factory=backend_factory(FakeBackend(json_text="Sure! Here is the product: {"))
    )

    with pytest.raises(MalformedResponse):
        asyncio.run(gateway.import_product("https://store.example/item/9", Language.ENGLISH))


def test_lifestyle_image_is_returned_as_png_data_uri(settings: Settings):
    gateway = GenerationGateway(settings, backend_factory=backend_factory(FakeBackend(image=b"\x89PNG-bytes")))

    image = asyncio.run(gateway.generate_lifestyle_image(PRODUCT))

    prefix = "data:image/png;base64,"
    assert image.startswith(prefix)
    assert base64.b64decode(image[len(prefix):]) == b"\x89PNG-bytes"


def test_lifestyle_image_without_inline_data_fails(settings: Settings):
    gateway = GenerationGateway(settings, backend_factory=backend_factory(FakeBackend(image=None)))

    with pytest.raises(NoImageGenerated):
        asyncio.run(gateway.generate_lifestyle_image(PRODUCT))


def test_mock_lifestyle_images_are_randomized_placeholders():
    gateway = GenerationGateway(Settings(api_key=None, mock_delay_scale=0.0))

    first = asyncio.run(gateway.generate_lifestyle_image(PRODUCT))
    second = asyncio.run(gateway.generate_lifestyle_image(PRODUCT))

    assert first.startswith("https://picsum.photos/seed/")
    assert first != second


def test_ad_copy_prompt_names_platform_and_language(settings: Settings):
    backend = FakeBackend(text="🔥 Buy it")
    gateway = GenerationGateway(settings, backend_factory=backend_factory(backend))

    copy = asyncio.run(gateway.generate_ad_copy(PRODUCT, "Facebook", "Portuguese"))

    assert copy == "🔥 Buy it"
    prompt = backend.calls[0][1]
    assert "Facebook" in prompt
    assert "Portuguese" in prompt
    assert "Bottle" in prompt


def test_mock_ad_copy_mentions_product_title():
    gateway = GenerationGateway(Settings(api_key=None, mock_delay_scale=0.0))

    copy = asyncio.run(gateway.generate_ad_copy(PRODUCT, Platform.REELS, Language.PORTUGUESE))

    assert "Bottle" in copy


def test_sales_page_with_unparseable_json_is_malformed(settings: Settings):
    gateway = GenerationGateway(settings, backend_factory=backend_factory(FakeBackend(json_text="<html>")))

    with pytest.raises(MalformedResponse):
        asyncio.run(gateway.generate_sales_page(PRODUCT, Language.ENGLISH))


def test_backend_failures_propagate_unchanged(settings: Settings):
    backend = FakeBackend(text=CredentialError("API key not valid"))
    gateway = GenerationGateway(settings, backend_factory=backend_factory(backend))

    with pytest.raises(CredentialError):
        asyncio.run(gateway.generate_video_script(PRODUCT, Platform.TIKTOK, Language.ENGLISH))


def test_backend_is_reused_until_the_key_changes(settings: Settings):
    keys = ["first-key"]
    built = []

    def factory(settings, api_key):
        backend = FakeBackend(text=f"script from {api_key}")
        built.append(backend)
        return backend

    gateway = GenerationGateway(settings, credential=lambda: keys[-1], backend_factory=factory)

    async def scenario():
        await asyncio.gather(*(gateway.generate_lifestyle_image(PRODUCT) for _ in range(4)))
        first = await gateway.generate_video_script(PRODUCT, Platform.TIKTOK, Language.ENGLISH)
        keys.append("second-key")
        second = await gateway.generate_video_script(PRODUCT, Platform.TIKTOK, Language.ENGLISH)
        return first, second

    first, second = asyncio.run(scenario())

    assert (first, second) == ("script from first-key", "script from second-key")
    assert len(built) == 2
    assert len(built[0].calls) == 5
    assert built[0].closed == 1
    assert built[1].closed == 0


def test_closing_gateway_closes_cached_backend(settings: Settings):
    backend = FakeBackend()
    gateway = GenerationGateway(settings, backend_factory=backend_factory(backend))

    asyncio.run(gateway.generate_ad_copy(PRODUCT, Platform.TIKTOK, Language.ENGLISH))
    asyncio.run(gateway.aclose())
    asyncio.run(gateway.aclose())

    assert backend.closed == 1
