"""
Taxonomy Index
==============

In-memory, read-only lookup over the category hierarchy and the curated
product-type mapping table.

Built once per ClassifierContext and shared by every request.

Example:
    index = TaxonomyIndex.from_files("data/taxonomy.json", "data/producttype-mappings.json")
    index.by_code("fb-1-3-1").full_name
    index.by_type_label("chocolate")  # -> "fb-2-3-2"
"""

import json
from pathlib import Path

from pydantic import ValidationError

from taxonomy_classifier.schemas.taxonomy import (
    ProductTypeMapping,
    TaxonomyAttribute,
    TaxonomyCategory,
    TaxonomyData,
)
from taxonomy_classifier.utils.errors import ConfigurationError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class TaxonomyIndex:
    """
    Category hierarchy lookup.

    Indexes:
        _categories: category code -> TaxonomyCategory
        _attributes: attribute handle -> TaxonomyAttribute
        _type_mappings: lower-cased product type -> category code
    """

    def __init__(
        self,
        data: TaxonomyData,
        mappings: list[ProductTypeMapping] | None = None,
    ) -> None:
        self.version = data.version
        self._categories: dict[str, TaxonomyCategory] = {}
        self._attributes: dict[str, TaxonomyAttribute] = {}
        self._type_mappings: dict[str, str] = {}

        for vertical in data.verticals:
            for category in vertical.categories:
                code = category.code
                if code:
                    self._categories[code] = category

        for attr in data.attributes:
            self._attributes[attr.resolved_handle] = attr

        for mapping in mappings or []:
            key = mapping.product_type.strip().lower()
            if key:
                self._type_mappings[key] = mapping.category_code

        logger.info(
            "Taxonomy index built",
            version=self.version,
            categories=len(self._categories),
            attributes=len(self._attributes),
            product_type_mappings=len(self._type_mappings),
        )

    @classmethod
    def from_files(
        cls,
        taxonomy_path: str | Path,
        mappings_path: str | Path | None = None,
    ) -> "TaxonomyIndex":
        """
        Load the hierarchy from taxonomy.json and an optional mapping table.

        The mapping file holds {"mappings": [{"productType": ..., "categoryCode": ...}]}.

        Raises:
            ConfigurationError: If a file is missing or malformed
        """
        try:
            raw = json.loads(Path(taxonomy_path).read_text(encoding="utf-8"))
            data = TaxonomyData.model_validate(raw)

            mappings: list[ProductTypeMapping] = []
            if mappings_path is not None and Path(mappings_path).exists():
                raw_mappings = json.loads(Path(mappings_path).read_text(encoding="utf-8"))
                mappings = [
                    ProductTypeMapping.model_validate(m) for m in raw_mappings.get("mappings", [])
                ]
            elif mappings_path is not None:
                logger.warning("Product type mapping file not found", path=str(mappings_path))

        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise ConfigurationError(
                message="Failed to load taxonomy data",
                details={"taxonomy_path": str(taxonomy_path), "error": str(e)},
            ) from e

        return cls(data, mappings)

    def by_code(self, code: str) -> TaxonomyCategory | None:
        """Get a category by its code."""
        return self._categories.get(code)

    def by_type_label(self, label: str) -> str | None:
        """Case-insensitive exact lookup of a merchant product type."""
        return self._type_mappings.get(label.strip().lower())

    def attribute_by_handle(self, handle: str) -> TaxonomyAttribute | None:
        """Get a full attribute definition by handle."""
        return self._attributes.get(handle)

    def children_of(self, code: str) -> list[TaxonomyCategory]:
        """All descendants of a category, in hierarchy order."""
        prefix = f"{code}-"
        return [c for k, c in self._categories.items() if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, code: object) -> bool:
        return code in self._categories
