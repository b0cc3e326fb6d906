"""
Schemas Package
===============

Pydantic models for classification requests, results and the category hierarchy.
"""

from taxonomy_classifier.schemas.domain import (
    AttributeAssignment,
    BatchItemResult,
    BundleDetection,
    CandidateSource,
    CategoryAssignment,
    CategoryCandidate,
    ClassificationInput,
    ClassificationOutput,
    ClassificationSignals,
    ClassifierConfig,
    ExtractedAttribute,
    ProductVariant,
    SelectionDecision,
)
from taxonomy_classifier.schemas.taxonomy import (
    AttributeValue,
    CategoryRef,
    CategorySearchResult,
    ProductTypeMapping,
    TaxonomyAttribute,
    TaxonomyCategory,
    TaxonomyData,
    TaxonomyVertical,
)

__all__ = [
    # Input
    "ClassificationInput",
    "ProductVariant",
    "ClassifierConfig",
    # Pipeline
    "BundleDetection",
    "CandidateSource",
    "CategoryCandidate",
    "SelectionDecision",
    "ExtractedAttribute",
    # Output
    "AttributeAssignment",
    "CategoryAssignment",
    "ClassificationOutput",
    "ClassificationSignals",
    "BatchItemResult",
    # Hierarchy
    "AttributeValue",
    "CategoryRef",
    "CategorySearchResult",
    "ProductTypeMapping",
    "TaxonomyAttribute",
    "TaxonomyCategory",
    "TaxonomyData",
    "TaxonomyVertical",
]
