"""Runs workflow actions against the gateway and merges results into the store."""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Sequence, Union

from .errors import CredentialError, GenerationError, InvalidTransition
from .gateway import GenerationGateway
from .guard import CredentialGuard
from .models import COPY_PLATFORMS, AdCreative, Language, Platform, WorkflowStep
from .state import StatePatch, WorkflowState, WorkflowStore
from .status import Notice, WorkflowEvent

LOGGER = logging.getLogger(__name__)

CREATIVE_KINDS = ("video", "images", "copy")
IMAGE_BATCH_SIZE = 4
JOURNAL_LIMIT = 200

CREDENTIAL_NOTICE = (
    "Your API key is invalid or lacks permission. Select a valid key from a project with billing "
    "enabled to continue."
)


async def join_all(awaitables: Iterable[Awaitable[Any]]) -> List[Any]:
    """Wait for every awaitable to settle and return results in input order.

    If any of them failed, one failure is raised once all have settled, so a
    batch never commits partially. A :class:`CredentialError` is raised ahead
    of any other failure; otherwise the first failure by input position wins.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        rejected = [failure for failure in failures if isinstance(failure, CredentialError)]
        raise (rejected or failures)[0]
    return list(results)


class WorkflowOrchestrator:
    """Workflow actions for one session.

    Every action returns ``True`` when its result was committed to the store and
    ``False`` when the guard was locked or the generation failed. Failures leave
    a :class:`Notice` in :attr:`notices`, and the latest one per loading kind
    stays in :attr:`failures` until that kind runs again. Caller mistakes
    (wrong step, bad input) raise instead. The journals keep the last
    ``JOURNAL_LIMIT`` entries.
    """

    def __init__(self, store: WorkflowStore, gateway: GenerationGateway, guard: CredentialGuard):
        self.store = store
        self.gateway = gateway
        self.guard = guard
        self.events: Deque[WorkflowEvent] = deque(maxlen=JOURNAL_LIMIT)
        self.notices: Deque[Notice] = deque(maxlen=JOURNAL_LIMIT)
        self.failures: Dict[str, Notice] = {}

    @property
    def state(self) -> WorkflowState:
        return self.store.snapshot

    def _record(self, kind: str, message: str, status: str = "info", **details: Any) -> None:
        self.events.append(WorkflowEvent(kind=kind, message=message, status=status, details=details or None))

    def _notify(self, kind: str, notice: Notice) -> None:
        self.notices.append(notice)
        self.failures[kind] = notice

    def _require_step(self, step: WorkflowStep) -> WorkflowState:
        state = self.store.snapshot
        if state.step is not step:
            raise InvalidTransition(f"Action requires step {step.value}, current step is {state.step.value}")
        if step is not WorkflowStep.IMPORT and state.product is None:
            raise InvalidTransition("No product has been imported")
        return state

    @asynccontextmanager
    async def _busy(self, kind: str):
        self.store.dispatch(StatePatch(loading={kind: True}))
        try:
            yield
        finally:
            self.store.dispatch(StatePatch(loading={kind: False}))

    def _failed(self, kind: str, operation: str, exc: Exception) -> bool:
        self._notify(
            kind,
            Notice(kind="failure", operation=operation, message=f"Failed to {operation}. Check the logs for details."),
        )
        self._record(kind, f"Failed: {operation}", status="failed", error=type(exc).__name__)
        return False

    async def _run(self, kind: str, operation: str, work: Callable[[], Awaitable[StatePatch]]) -> bool:
        self.failures.pop(kind, None)
        if not self.guard.is_unlocked:
            LOGGER.info("Ignoring %s: workflow is locked until an API key is selected", operation)
            self._record(kind, f"Skipped {operation}: workflow locked", status="skipped")
            return False

        async with self._busy(kind):
            self._record(kind, f"Started: {operation}", status="started")
            try:
                patch = await work()
            except CredentialError as exc:
                LOGGER.error(f"Failed to {operation}: {exc}")
                self.guard.record_credential_failure()
                self._notify(kind, Notice(kind="credential", operation=operation, message=CREDENTIAL_NOTICE))
                self._record(kind, f"Credential rejected during {operation}", status="failed")
                return False
            except GenerationError as exc:
                LOGGER.error(f"Failed to {operation}: {exc}")
                return self._failed(kind, operation, exc)
            except Exception as exc:
                # Unclassified errors (transport, SDK quirks) count as generic failures
                LOGGER.exception(f"Unexpected error while trying to {operation}")
                return self._failed(kind, operation, exc)

            self.guard.record_success()
            self.store.dispatch(patch)
            self._record(kind, f"Completed: {operation}", status="completed")
            return True

    async def import_product(self, url: str, language: Union[Language, str] = Language.PORTUGUESE) -> bool:
        self._require_step(WorkflowStep.IMPORT)
        if not url or not url.strip():
            raise ValueError("A product URL is required")
        language = Language(language)

        async def work() -> StatePatch:
            product = await self.gateway.import_product(url, language)
            LOGGER.info(f"Imported product {product.title!r} from {url}")
            return StatePatch(product=product, language=language, step=WorkflowStep.CREATIVES)

        return await self._run("importing", "import product", work)

    async def generate_creatives(self, kind: str, platform: Union[Platform, str] = Platform.TIKTOK) -> bool:
        if kind not in CREATIVE_KINDS:
            raise ValueError(f"Unknown creative kind: {kind}")
        state = self._require_step(WorkflowStep.CREATIVES)
        product = state.product
        language = state.language

        async def video() -> StatePatch:
            script = await self.gateway.generate_video_script(product, platform, language)
            return StatePatch(creatives=AdCreative(video_script=script))

        async def images() -> StatePatch:
            generated = await join_all(
                self.gateway.generate_lifestyle_image(product) for _ in range(IMAGE_BATCH_SIZE)
            )
            return StatePatch(creatives=AdCreative(lifestyle_images=tuple(generated)))

        async def copy() -> StatePatch:
            texts: Sequence[str] = await join_all(
                self.gateway.generate_ad_copy(product, item, language) for item in COPY_PLATFORMS
            )
            ad_copy = {item.key: text for item, text in zip(COPY_PLATFORMS, texts)}
            return StatePatch(creatives=AdCreative(ad_copy=ad_copy))

        work = {"video": video, "images": images, "copy": copy}[kind]
        return await self._run(kind, f"generate {kind}", work)

    def advance(self) -> bool:
        self._require_step(WorkflowStep.CREATIVES)
        if not self.guard.is_unlocked:
            return False
        self.store.dispatch(StatePatch(step=WorkflowStep.SALES_PAGE))
        self._record("advance", "Moved to the sales page step")
        return True

    async def generate_sales_page(self) -> bool:
        state = self._require_step(WorkflowStep.SALES_PAGE)

        async def work() -> StatePatch:
            page = await self.gateway.generate_sales_page(state.product, state.language)
            return StatePatch(sales_page=page)

        return await self._run("page", "generate the sales page", work)

    def set_margin(self, margin: float) -> WorkflowState:
        return self.store.dispatch(StatePatch(margin=margin))
