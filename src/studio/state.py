"""Session state held as immutable snapshots updated through patches."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidTransition
from .models import (
    DEFAULT_MARGIN,
    AdCreative,
    Language,
    LoadingState,
    Product,
    SalesPage,
    WorkflowStep,
    selling_price,
    validate_margin,
)


@dataclass(frozen=True)
class WorkflowState:
    step: WorkflowStep = WorkflowStep.IMPORT
    language: Language = Language.PORTUGUESE
    margin: float = DEFAULT_MARGIN
    product: Optional[Product] = None
    creatives: Optional[AdCreative] = None
    sales_page: Optional[SalesPage] = None
    loading: LoadingState = field(default_factory=LoadingState)

    @property
    def selling_price(self) -> float:
        if self.product is None:
            return 0.0
        return selling_price(self.product.supplier_price, self.margin)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "language": self.language.value,
            "margin": self.margin,
            "selling_price": self.selling_price,
            "product": self.product.as_dict() if self.product else None,
            "creatives": self.creatives.as_dict() if self.creatives else None,
            "sales_page": self.sales_page.as_dict() if self.sales_page else None,
            "loading": self.loading.as_dict(),
        }


@dataclass(frozen=True)
class StatePatch:
    """Fields to set on the next snapshot. ``None`` leaves a field untouched.

    ``creatives`` is partial: only its non-``None`` fields are merged into the
    current creative. ``loading`` sets only the flags it names.
    """

    step: Optional[WorkflowStep] = None
    language: Optional[Language] = None
    margin: Optional[float] = None
    product: Optional[Product] = None
    creatives: Optional[AdCreative] = None
    sales_page: Optional[SalesPage] = None
    loading: Optional[Mapping[str, bool]] = None


def apply_patch(state: WorkflowState, patch: StatePatch) -> WorkflowState:
    changes: Dict[str, Any] = {}

    if patch.step is not None:
        if patch.step.position < state.step.position:
            raise InvalidTransition(f"Cannot move from {state.step.value} back to {patch.step.value}")
        changes["step"] = patch.step
    if patch.language is not None:
        changes["language"] = Language(patch.language)
    if patch.margin is not None:
        changes["margin"] = validate_margin(patch.margin)
    if patch.product is not None:
        changes["product"] = patch.product
    if patch.creatives is not None:
        changes["creatives"] = (state.creatives or AdCreative()).merge(patch.creatives)
    if patch.sales_page is not None:
        changes["sales_page"] = patch.sales_page
    if patch.loading:
        loading = state.loading
        for kind, busy in patch.loading.items():
            loading = loading.with_flag(kind, busy)
        changes["loading"] = loading

    return replace(state, **changes)


class WorkflowStore:
    """Holds the current snapshot; every change goes through :meth:`dispatch`."""

    def __init__(self, initial: Optional[WorkflowState] = None):
        self._state = initial or WorkflowState()

    @property
    def snapshot(self) -> WorkflowState:
        return self._state

    @property
    def selling_price(self) -> float:
        return self._state.selling_price

    def dispatch(self, patch: StatePatch) -> WorkflowState:
        self._state = apply_patch(self._state, patch)
        return self._state
