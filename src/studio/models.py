"""Domain objects for the product, creatives and sales page."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import MalformedResponse

DEFAULT_MARGIN = 150.0
BENEFIT_ICONS: Tuple[str, ...] = ("Heart", "Message", "Battery", "Star", "Shield", "Truck", "Zap", "Check")
LOADING_KINDS: Tuple[str, ...] = ("importing", "video", "images", "copy", "page")


class WorkflowStep(str, Enum):
    IMPORT = "IMPORT"
    CREATIVES = "CREATIVES"
    SALES_PAGE = "SALES_PAGE"

    @property
    def position(self) -> int:
        return list(WorkflowStep).index(self)


class Language(str, Enum):
    PORTUGUESE = "Portuguese"
    ENGLISH = "English"
    SPANISH = "Spanish"


class Platform(str, Enum):
    TIKTOK = "TikTok"
    FACEBOOK = "Facebook"
    REELS = "Reels"

    @property
    def key(self) -> str:
        return self.value.lower()


# Copy batches are committed in this order regardless of completion order.
COPY_PLATFORMS: Tuple[Platform, ...] = (Platform.TIKTOK, Platform.FACEBOOK, Platform.REELS)


@dataclass(frozen=True)
class Product:
    title: str
    description: str
    images: Tuple[str, ...] = ()
    variations: Tuple[str, ...] = ()
    supplier_price: float = 0.0

    def __post_init__(self) -> None:
        if self.supplier_price < 0:
            raise ValueError(f"supplier_price must be non-negative, got {self.supplier_price}")

    @classmethod
    def from_payload(cls, payload: Any, *, images: Tuple[str, ...] = ()) -> "Product":
        """Build a product from the service's ``{title, description, variations, supplierPrice}`` object."""
        if not isinstance(payload, dict):
            raise MalformedResponse(f"Expected a JSON object for the product, got {type(payload).__name__}")
        try:
            variations = payload.get("variations") or []
            if not isinstance(variations, list):
                raise TypeError("variations must be a list")
            return cls(
                title=str(payload["title"]),
                description=str(payload["description"]),
                images=tuple(images),
                variations=tuple(str(item) for item in variations),
                supplier_price=float(payload["supplierPrice"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"Product payload has an unexpected shape: {exc}") from exc

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "images": list(self.images),
            "variations": list(self.variations),
            "supplier_price": self.supplier_price,
        }


@dataclass(frozen=True)
class AdCreative:
    """Creatives fill in one field at a time; ``None`` means not generated yet."""

    video_script: Optional[str] = None
    lifestyle_images: Optional[Tuple[str, ...]] = None
    ad_copy: Optional[Mapping[str, str]] = None

    def merge(self, update: "AdCreative") -> "AdCreative":
        return AdCreative(
            video_script=update.video_script if update.video_script is not None else self.video_script,
            lifestyle_images=(
                update.lifestyle_images if update.lifestyle_images is not None else self.lifestyle_images
            ),
            ad_copy=dict(update.ad_copy) if update.ad_copy is not None else self.ad_copy,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "video_script": self.video_script,
            "lifestyle_images": list(self.lifestyle_images) if self.lifestyle_images is not None else None,
            "ad_copy": dict(self.ad_copy) if self.ad_copy is not None else None,
        }


@dataclass(frozen=True)
class Benefit:
    icon: str
    title: str
    text: str


@dataclass(frozen=True)
class Testimonial:
    name: str
    text: str
    rating: int

    def __post_init__(self) -> None:
        if not 1 <= self.rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {self.rating}")


@dataclass(frozen=True)
class SalesPage:
    headline: str
    opening: str
    benefits: Tuple[Benefit, ...]
    how_it_works: str
    testimonials: Tuple[Testimonial, ...]
    urgency: str
    cta: str

    @classmethod
    def from_payload(cls, payload: Any) -> "SalesPage":
        if not isinstance(payload, dict):
            raise MalformedResponse(f"Expected a JSON object for the sales page, got {type(payload).__name__}")
        try:
            benefits = tuple(
                Benefit(icon=str(item["icon"]), title=str(item["title"]), text=str(item["text"]))
                for item in payload["benefits"]
            )
            testimonials = tuple(
                Testimonial(name=str(item["name"]), text=str(item["text"]), rating=int(item["rating"]))
                for item in payload["testimonials"]
            )
            return cls(
                headline=str(payload["headline"]),
                opening=str(payload["opening"]),
                benefits=benefits,
                how_it_works=str(payload["howItWorks"]),
                testimonials=testimonials,
                urgency=str(payload["urgency"]),
                cta=str(payload["cta"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"Sales page payload has an unexpected shape: {exc}") from exc

    def as_dict(self) -> Dict[str, Any]:
        return {
            "headline": self.headline,
            "opening": self.opening,
            "benefits": [
                {"icon": benefit.icon, "title": benefit.title, "text": benefit.text} for benefit in self.benefits
            ],
            "how_it_works": self.how_it_works,
            "testimonials": [
                {"name": item.name, "text": item.text, "rating": item.rating} for item in self.testimonials
            ],
            "urgency": self.urgency,
            "cta": self.cta,
        }


@dataclass(frozen=True)
class LoadingState:
    importing: bool = False
    video: bool = False
    images: bool = False
    copy: bool = False
    page: bool = False

    def with_flag(self, kind: str, busy: bool) -> "LoadingState":
        if kind not in LOADING_KINDS:
            raise ValueError(f"Unknown operation kind: {kind}")
        values = self.as_dict()
        values[kind] = busy
        return LoadingState(**values)

    def as_dict(self) -> Dict[str, bool]:
        return {kind: getattr(self, kind) for kind in LOADING_KINDS}


def selling_price(supplier_price: float, margin: float) -> float:
    validate_margin(margin)
    return supplier_price * (1 + margin / 100)


def validate_margin(margin: float) -> float:
    if margin < -100:
        raise ValueError(f"margin must be at least -100, got {margin}")
    return margin
