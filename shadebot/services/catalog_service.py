"""Catalog source: fixed sizes, product families and searchable products.

Lookups return None on a miss; "not found" is never an exception.
"""

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from shadebot.logging_config import get_logger
from shadebot.services.extraction.dimensions import format_meters

logger = get_logger("catalog_service")

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.json"


class CatalogSize(BaseModel):
    width: float
    height: float
    price: float
    image_url: Optional[str] = None

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def size_str(self) -> str:
        return f"{format_meters(self.width)}x{format_meters(self.height)}"


class ProductFamily(BaseModel):
    key: str
    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    uses: list[str] = Field(default_factory=list)
    price_range: Optional[str] = None


class Product(BaseModel):
    name: str
    family: str
    keywords: list[str] = Field(default_factory=list)
    description: str = ""
    price_range: Optional[str] = None
    image_url: Optional[str] = None


class RollOption(BaseModel):
    width: float
    length: float
    percentages: list[int] = Field(default_factory=list)


class CatalogData(BaseModel):
    sizes: list[CatalogSize] = Field(default_factory=list)
    families: list[ProductFamily] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)
    rolls: list[RollOption] = Field(default_factory=list)
    colors: list[str] = Field(default_factory=list)


class CatalogSource(ABC):
    @abstractmethod
    def get_sizes(self) -> list[CatalogSize]:
        """Made-to-size panels ordered by area ascending."""

    @abstractmethod
    def get_families(self) -> list[ProductFamily]:
        pass

    @abstractmethod
    def get_rolls(self) -> list[RollOption]:
        pass

    @abstractmethod
    def get_colors(self) -> list[str]:
        pass

    @abstractmethod
    def find_family(self, text: str) -> Optional[ProductFamily]:
        pass

    @abstractmethod
    def search_product(self, text: str) -> Optional[Product]:
        pass

    def find_size(self, width: float, height: float, tolerance: float = 0.0) -> Optional[CatalogSize]:
        """Exact entry for width x height in either orientation."""
        for size in self.get_sizes():
            if _close(size.width, width, tolerance) and _close(size.height, height, tolerance):
                return size
            if _close(size.width, height, tolerance) and _close(size.height, width, tolerance):
                return size
        return None

    def largest_size(self) -> Optional[CatalogSize]:
        sizes = self.get_sizes()
        return sizes[-1] if sizes else None


def _close(a: float, b: float, tolerance: float) -> bool:
    return abs(a - b) <= tolerance + 1e-9


def _mentions(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase.lower())}\b", text) is not None


class StaticCatalogSource(CatalogSource):
    """Catalog loaded once from JSON."""

    def __init__(self, data: CatalogData):
        self.data = data
        self._sizes = sorted(data.sizes, key=lambda s: (s.area, s.price))

    @classmethod
    def from_path(cls, path: Optional[str | Path] = None) -> "StaticCatalogSource":
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = CatalogData.model_validate(json.load(f))
        logger.info(
            "Catalog loaded",
            extra={"context": {"path": str(catalog_path), "sizes": len(data.sizes), "products": len(data.products)}},
        )
        return cls(data)

    def get_sizes(self) -> list[CatalogSize]:
        return list(self._sizes)

    def get_families(self) -> list[ProductFamily]:
        return list(self.data.families)

    def get_rolls(self) -> list[RollOption]:
        return list(self.data.rolls)

    def get_colors(self) -> list[str]:
        return list(self.data.colors)

    def find_family(self, text: str) -> Optional[ProductFamily]:
        if not text:
            return None
        lowered = text.lower()
        for family in self.data.families:
            if any(_mentions(lowered, alias) for alias in [family.name, *family.aliases]):
                return family
        return None

    def search_product(self, text: str) -> Optional[Product]:
        if not text:
            return None
        lowered = text.lower()
        best: Optional[Product] = None
        best_hits = 0
        for product in self.data.products:
            hits = sum(1 for keyword in product.keywords if _mentions(lowered, keyword))
            if hits > best_hits:
                best, best_hits = product, hits
        return best
