"""
Confidence Scoring
==================

Combines the decision service's self-reported certainty, the top
retrieval similarity and a bundle penalty into one bounded score,
and decides whether a classification needs human review.

The decision service is the authoritative signal. Retrieval similarity
is a secondary sanity check and bundle status a minor penalty.
"""

import math
from dataclasses import dataclass

from taxonomy_classifier.config.settings import Settings
from taxonomy_classifier.schemas.domain import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    TAXONOMY_MAX_DEPTH,
    BundleDetection,
    CategoryCandidate,
    ClassificationSignals,
)


@dataclass(frozen=True)
class ConfidenceWeights:
    """Weights for combining confidence signals."""

    llm_confidence: float = 0.85
    embedding_score: float = 0.10
    bundle_adjustment: float = 0.05

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfidenceWeights":
        return cls(
            llm_confidence=settings.confidence_weight_llm,
            embedding_score=settings.confidence_weight_embedding,
            bundle_adjustment=settings.confidence_weight_bundle,
        )


DEFAULT_WEIGHTS = ConfidenceWeights()


def _finite(value: float) -> float:
    # NaN would slip through min/max clamping
    return 0.0 if math.isnan(value) else value


def calculate_confidence(
    llm_confidence: float,
    embedding_score: float | None = None,
    bundle_detection: BundleDetection | None = None,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
) -> float:
    """
    Calculate the combined confidence score.

    Args:
        llm_confidence: Decision-service certainty
        embedding_score: Best similarity-search score, None when absent
        bundle_detection: Bundle detection result, penalized when a bundle

    Returns:
        Score clamped to [0, 1]
    """
    score = _finite(llm_confidence) * weights.llm_confidence

    if embedding_score is not None:
        score += _finite(embedding_score) * weights.embedding_score

    # Bundles are harder to classify precisely
    if bundle_detection is not None and bundle_detection.is_bundle:
        score -= weights.bundle_adjustment * (1 - bundle_detection.confidence)

    return min(1.0, max(0.0, _finite(score)))


def needs_review(confidence: float, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> bool:
    """A classification needs review when its score is strictly below threshold."""
    return confidence < threshold


def adjust_category_for_bundle(selected_code: str, bundle_detection: BundleDetection) -> str:
    """
    Cap the category depth for bundles.

    Keeps at most recommended_max_depth + 1 hyphen segments; the extra
    segment is the root vertical prefix ("fb"). Non-bundles and codes
    already within depth are returned unchanged, so the function is
    idempotent.
    """
    if not bundle_detection.is_bundle:
        return selected_code

    parts = selected_code.split("-")
    max_parts = bundle_detection.recommended_max_depth + 1

    if len(parts) > max_parts:
        return "-".join(parts[:max_parts])
    return selected_code


def validate_selection(
    selected_code: str,
    candidates: list[CategoryCandidate],
) -> CategoryCandidate | None:
    """Return the candidate with the selected code, or None when absent."""
    for candidate in candidates:
        if candidate.code == selected_code:
            return candidate
    return None


def build_signals(
    bundle_detection: BundleDetection,
    top_match: CategoryCandidate | None,
    product_type_match: str | None = None,
) -> ClassificationSignals:
    """
    Build the signals record attached to the output.

    Args:
        bundle_detection: Bundle detection result
        top_match: Best similarity-search hit, None when the search
            failed or found nothing
        product_type_match: Code the merchant type label maps to
    """
    return ClassificationSignals(
        is_bundle=bundle_detection.is_bundle,
        product_type_match=product_type_match,
        embedding_top_match=top_match.path if top_match else None,
        embedding_score=top_match.score if top_match else None,
    )


def score_specificity(level: int, max_level: int = TAXONOMY_MAX_DEPTH) -> float:
    """Deeper categories are more specific: level / max_level."""
    if max_level <= 0:
        return 0.0
    return level / max_level
