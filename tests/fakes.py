from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from studio.config import Settings
from studio.gateway import GenerationGateway
from studio.guard import CredentialGuard
from studio.orchestrator import WorkflowOrchestrator
from studio.state import WorkflowStore

PRODUCT_JSON = json.dumps(
    {
        "title": "Garrafa Térmica Inox",
        "description": "Mantém sua bebida gelada por 24 horas.",
        "variations": ["Preto", "Branco"],
        "supplierPrice": 12.5,
        "images": ["https://supplier.example/ignored.jpg"],
    }
)

SALES_PAGE_JSON = json.dumps(
    {
        "headline": "Hydration, upgraded",
        "opening": "Tired of warm water?",
        "benefits": [
            {"icon": "Heart", "title": "Healthy", "text": "No plastic taste."},
            {"icon": "Zap", "title": "Fast", "text": "Chills in minutes."},
            {"icon": "Shield", "title": "Durable", "text": "Steel built."},
        ],
        "howItWorks": "Fill it, close it, go.",
        "testimonials": [
            {"name": "Ana", "text": "Love it", "rating": 5},
            {"name": "Rui", "text": "Solid", "rating": 4},
        ],
        "urgency": "Only 12 left!",
        "cta": "Buy now",
    }
)


class FakeBackend:
    """Stands in for the generation service.

    Each response may be a value, an exception instance, a callable taking the
    prompt, or a list consumed one item per call.
    """

    def __init__(
        self,
        *,
        text: Any = "Generated text",
        json_text: Any = PRODUCT_JSON,
        image: Any = b"\x89PNG-fake",
        delays: Optional[Dict[str, Any]] = None,
    ):
        self.responses: Dict[str, Any] = {"text": text, "json": json_text, "image": image}
        self.delays = delays or {}
        self.calls: List[Tuple[str, str]] = []
        self.closed = 0

    async def _respond(self, kind: str, prompt: str) -> Any:
        self.calls.append((kind, prompt))
        response = self.responses[kind]
        if isinstance(response, list):
            response = response.pop(0)
        delay = self.delays.get(kind, 0)
        await asyncio.sleep(delay(prompt) if callable(delay) else delay)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(prompt)
        return response

    async def complete_text(self, prompt: str) -> str:
        return await self._respond("text", prompt)

    async def complete_json(self, prompt: str) -> str:
        return await self._respond("json", prompt)

    async def complete_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[bytes]:
        return await self._respond("image", prompt)

    async def aclose(self) -> None:
        self.closed += 1


class FakeHost:
    def __init__(self, selected: bool = False):
        self.selected = selected
        self.selection_opened = 0

    async def has_selected_api_key(self) -> bool:
        return self.selected

    async def open_select_key(self) -> None:
        self.selection_opened += 1


def backend_factory(backend: FakeBackend) -> Callable[[Settings, str], FakeBackend]:
    return lambda settings, api_key: backend


def build_orchestrator(
    settings: Settings,
    backend: FakeBackend,
    guard: Optional[CredentialGuard] = None,
    store: Optional[WorkflowStore] = None,
) -> WorkflowOrchestrator:
    gateway = GenerationGateway(settings, backend_factory=backend_factory(backend))
    if guard is None:
        guard = CredentialGuard()
        asyncio.run(guard.initialize())
    return WorkflowOrchestrator(store or WorkflowStore(), gateway, guard)
