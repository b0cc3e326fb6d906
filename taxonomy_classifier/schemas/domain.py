"""
Domain Models
=============

Request-scoped entities of the classification pipeline.
Created and consumed within a single classification; never persisted.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

# Deepest level of the category hierarchy
TAXONOMY_MAX_DEPTH = 7

# Bundles are classified no deeper than this level
BUNDLE_MAX_DEPTH = 3

# Confidence at which bundle signals flip a product into a bundle
BUNDLE_CONFIDENCE_THRESHOLD = 0.4

DEFAULT_CONFIDENCE_THRESHOLD = 0.85
DEFAULT_MAX_CANDIDATES = 10
MAX_CANDIDATES_LIMIT = 50

ModelVariant = Literal["standard", "large"]


# =============================================================================
# Input
# =============================================================================


class ProductVariant(BaseModel):
    """Product variant details used as bundle signals."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    sku: str | None = None
    options: tuple[tuple[str, str], ...] = ()

    @field_validator("options", mode="before")
    @classmethod
    def freeze_options(cls, v: Any) -> Any:
        """Accept a name -> value mapping and keep it as ordered pairs."""
        if isinstance(v, Mapping):
            return tuple(v.items())
        return v

    @field_serializer("options")
    def serialize_options(self, options: tuple[tuple[str, str], ...]) -> dict[str, str]:
        return dict(options)


class ClassificationInput(BaseModel):
    """
    Product to classify.

    Attributes:
        title: Product title (required, non-empty)
        description: Optional description, HTML or plain text
        tags: Merchant tags in their original order
        product_type: Merchant-supplied type label (unreliable)
        variants: Variants in their original order
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "title": "Organic Dark Chocolate Bar 70%",
                "description": "<p>Rich dark chocolate made with organic cacao.</p>",
                "tags": ["chocolate", "organic"],
                "product_type": "Chocolate",
                "variants": [{"title": "3.5oz", "sku": "DCB-35"}],
            }
        },
    )

    title: Annotated[str, Field(min_length=1, description="Product title")]
    description: str | None = None
    tags: tuple[str, ...] = ()
    product_type: str | None = None
    variants: tuple[ProductVariant, ...] = ()

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject whitespace-only titles."""
        if not v.strip():
            raise ValueError("title must not be blank")
        return v


# =============================================================================
# Pipeline intermediates
# =============================================================================


class CandidateSource(str, Enum):
    """Where a category candidate came from."""

    EMBEDDING = "embedding"
    PRODUCT_TYPE = "product_type"
    MANUAL = "manual"


class CategoryCandidate(BaseModel):
    """A category proposed as a plausible classification target."""

    model_config = ConfigDict(frozen=True)

    code: str
    path: str
    level: Annotated[int, Field(ge=0, le=TAXONOMY_MAX_DEPTH)]
    source: CandidateSource
    score: Annotated[float, Field(ge=0.0, le=1.0)]


class BundleDetection(BaseModel):
    """
    Outcome of bundle detection.

    Consumed by candidate generation (depth ceiling), confidence
    scoring (penalty) and post-selection depth adjustment.
    """

    model_config = ConfigDict(frozen=True)

    is_bundle: bool
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    signals: list[str] = Field(default_factory=list)
    recommended_max_depth: Annotated[int, Field(ge=0, le=TAXONOMY_MAX_DEPTH)]

    @model_validator(mode="after")
    def check_flag_matches_confidence(self) -> Self:
        if self.is_bundle != (self.confidence >= BUNDLE_CONFIDENCE_THRESHOLD):
            raise ValueError(
                f"is_bundle must be true exactly when confidence >= {BUNDLE_CONFIDENCE_THRESHOLD}"
            )
        return self


class SelectionDecision(BaseModel):
    """Category choice returned by the decision service."""

    model_config = ConfigDict(frozen=True)

    selected_code: Annotated[str, Field(min_length=1)]
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    reasoning: str = ""


class ExtractedAttribute(BaseModel):
    """Single attribute value parsed from the decision service."""

    handle: str
    value: str
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5


# =============================================================================
# Output
# =============================================================================


class CategoryAssignment(BaseModel):
    """Assigned category with combined confidence."""

    model_config = ConfigDict(frozen=True)

    code: str
    path: str
    gid: str
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]


class AttributeAssignment(BaseModel):
    """Extracted attribute value for the assigned category."""

    model_config = ConfigDict(frozen=True)

    handle: str
    name: str
    value: str
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]


class ClassificationSignals(BaseModel):
    """Signals that influenced the classification."""

    model_config = ConfigDict(frozen=True)

    is_bundle: bool
    product_type_match: str | None = None
    embedding_top_match: str | None = None
    embedding_score: float | None = None


class ClassificationOutput(BaseModel):
    """Final, externally visible classification result."""

    model_config = ConfigDict(frozen=True)

    category: CategoryAssignment
    attributes: list[AttributeAssignment] = Field(default_factory=list)
    reasoning: str
    needs_review: bool
    signals: ClassificationSignals


class ClassifierConfig(BaseModel):
    """Per-request classifier configuration."""

    model_config = ConfigDict(frozen=True)

    confidence_threshold: Annotated[float, Field(ge=0.0, le=1.0)] = DEFAULT_CONFIDENCE_THRESHOLD
    max_candidates: Annotated[int, Field(ge=1, le=MAX_CANDIDATES_LIMIT)] = DEFAULT_MAX_CANDIDATES
    extract_attributes: bool = True
    model: ModelVariant = "standard"


class BatchItemResult(BaseModel):
    """Outcome of one product in a batch classification."""

    success: bool
    result: ClassificationOutput | None = None
    error: str | None = None
    error_type: str | None = None
