"""Data models used throughout the link preview pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LinkKind(str, Enum):
    GENERAL = "general"
    PRODUCT = "product"


class StockStatus(str, Enum):
    """Tri-state stock flag; UNKNOWN is distinct from OUT_OF_STOCK."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN = "unknown"


class ImageSource(str, Enum):
    """Where an image candidate was discovered."""

    DOMAIN = "domain-specific"
    META = "meta"
    JSON_LD = "json-ld"
    IMG_TAG = "img-tag"
    VIDEO_POSTER = "video-poster"


@dataclass
class FetchRequest:
    """Parameters for a single page fetch."""

    url: str
    max_attempts: int = 3
    prefer_rendering: bool = True
    wait_after_load: float = 4.5


@dataclass
class LinkMetadata:
    """Product and availability signals extracted from a page."""

    kind: LinkKind = LinkKind.GENERAL
    product_name: Optional[str] = None
    price: Optional[str] = None
    currency: Optional[str] = None
    availability: Optional[str] = None
    in_stock: StockStatus = StockStatus.UNKNOWN

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "product_name": self.product_name,
            "price": self.price,
            "currency": self.currency,
            "availability": self.availability,
            "in_stock": self.in_stock.value,
        }


@dataclass(frozen=True)
class ImageCandidate:
    """Raw image reference discovered while parsing page markup."""

    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    source: ImageSource = ImageSource.META


@dataclass(frozen=True)
class ScoredImage:
    candidate: ImageCandidate
    score: int

    @property
    def url(self) -> str:
        return self.candidate.url


@dataclass
class PreviewResult:
    """Everything the caller needs to persist a link preview."""

    source_url: str
    final_title: str
    content: str
    metadata: LinkMetadata = field(default_factory=LinkMetadata)
    image_url: Optional[str] = None
    description: Optional[str] = None
    body_text: str = ""

    def as_dict(self) -> dict:
        return {
            "source_url": self.source_url,
            "title": self.final_title,
            "content": self.content,
            "image_url": self.image_url,
            "description": self.description,
            "metadata": self.metadata.as_dict(),
        }
