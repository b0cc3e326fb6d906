"""
Taxonomy Schemas
================

Read-only category hierarchy types, matching the layout of taxonomy.json
(verticals -> categories, plus top-level attribute definitions).
"""

from pydantic import BaseModel, ConfigDict, Field

GID_PREFIX = "gid://shopify/TaxonomyCategory/"


class AttributeValue(BaseModel):
    """Allowed value of a category attribute."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    handle: str = ""


class TaxonomyAttribute(BaseModel):
    """Attribute definition. Categories embed abbreviated copies of these."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    handle: str = ""
    description: str = ""
    extended: bool = False
    values: list[AttributeValue] = Field(default_factory=list)

    @property
    def resolved_handle(self) -> str:
        """Handle, derived from the name when the data omits it."""
        return self.handle or self.name.lower().replace(" ", "_")


class CategoryRef(BaseModel):
    """Abbreviated reference to a parent/child/ancestor category."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str


class TaxonomyCategory(BaseModel):
    """Full category node."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    level: int
    name: str
    full_name: str
    parent_id: str | None = None
    attributes: list[TaxonomyAttribute] = Field(default_factory=list)
    children: list[CategoryRef] = Field(default_factory=list)
    ancestors: list[CategoryRef] = Field(default_factory=list)

    @property
    def code(self) -> str | None:
        return extract_category_code(self.id)


class TaxonomyVertical(BaseModel):
    """Top-level category group."""

    model_config = ConfigDict(extra="ignore")

    name: str
    prefix: str
    categories: list[TaxonomyCategory] = Field(default_factory=list)


class TaxonomyData(BaseModel):
    """Root structure of taxonomy.json."""

    model_config = ConfigDict(extra="ignore")

    version: str
    verticals: list[TaxonomyVertical] = Field(default_factory=list)
    attributes: list[TaxonomyAttribute] = Field(default_factory=list)


class ProductTypeMapping(BaseModel):
    """Curated merchant type label -> category code entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    product_type: str = Field(alias="productType")
    category_code: str = Field(alias="categoryCode")
    max_depth: int | None = Field(default=None, alias="maxDepth")


class CategorySearchResult(BaseModel):
    """Row returned by the vector similarity store."""

    model_config = ConfigDict(frozen=True)

    category_code: str
    category_name: str = ""
    full_path: str
    level: int
    similarity: float


def extract_category_code(gid: str) -> str | None:
    """
    Extract the category code from a GID.

    Example:
        extract_category_code("gid://shopify/TaxonomyCategory/fb-1-2") -> "fb-1-2"
    """
    if not gid.startswith(GID_PREFIX):
        return None
    code = gid[len(GID_PREFIX):]
    return code or None
