"""
Bundle Detector
===============

Identifies variety packs, gift boxes and other multi-product listings.

Bundles are classified at a broader (shallower) taxonomy level because
their contents may span several leaf categories.

Detection is driven by a declarative rule table: every rule names the
product field it reads, the phrases it looks for and the weight it
contributes on its first match. One generic scorer evaluates the table.

Example:
    result = detect_bundle(ClassificationInput(title="Artisan Chocolate Variety Pack"))
    # result.is_bundle = True
    # result.signals = ['title contains "variety pack"']
    # result.recommended_max_depth = 3
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from taxonomy_classifier.schemas.domain import (
    BUNDLE_CONFIDENCE_THRESHOLD,
    BUNDLE_MAX_DEPTH,
    TAXONOMY_MAX_DEPTH,
    BundleDetection,
    ClassificationInput,
    ProductVariant,
)
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class BundleField(str, Enum):
    """Product field a bundle rule reads."""

    TITLE = "title"
    DESCRIPTION = "description"
    PRODUCT_TYPE = "product_type"
    TAGS = "tags"


@dataclass(frozen=True)
class BundleRule:
    """A weighted phrase scan over one product field."""

    field: BundleField
    phrases: tuple[str, ...]
    weight: float
    signal_template: str


# Longer phrases first so the reported signal is the most specific one
BUNDLE_KEYWORDS: tuple[str, ...] = (
    "variety pack",
    "sample pack",
    "gift box",
    "gift set",
    "gift pack",
    "mix pack",
    "combo pack",
    "multi-pack",
    "multipack",
    "starter kit",
    "discovery set",
    "trial pack",
    "explorer pack",
    "variety",
    "sampler",
    "assortment",
    "assorted",
    "bundle",
    "collection",
    "mixed",
    "combo",
)

BUNDLE_TAGS: tuple[str, ...] = (
    "bundle",
    "variety",
    "gift",
    "gift-box",
    "sampler",
    "assortment",
    "multi-pack",
    "set",
    "collection",
)

BUNDLE_PRODUCT_TYPES: tuple[str, ...] = (
    "gift box",
    "gift set",
    "variety pack",
    "bundle",
    "sampler",
    "assortment",
)

BUNDLE_RULES: tuple[BundleRule, ...] = (
    BundleRule(BundleField.TITLE, BUNDLE_KEYWORDS, 0.4, 'title contains "{phrase}"'),
    BundleRule(BundleField.DESCRIPTION, BUNDLE_KEYWORDS, 0.2, 'description contains "{phrase}"'),
    BundleRule(BundleField.PRODUCT_TYPE, BUNDLE_PRODUCT_TYPES, 0.5, 'product type is "{value}"'),
    BundleRule(BundleField.TAGS, BUNDLE_TAGS, 0.4, 'has bundle-related tag "{phrase}"'),
)

# Weight of each distinct variant signal type
VARIANT_SIGNAL_WEIGHT = 0.2
MIN_VARIETY_VARIANTS = 3

# Option names whose values denote different products rather than quantities
VARIETY_OPTION_NAMES: tuple[str, ...] = ("flavor", "flavour", "scent", "variety", "style", "type")

SIZE_PATTERN = re.compile(
    r"^(x-?small|small|medium|large|x-?large|xs|s|m|l|xl|xxl|"
    r"\d+(\.\d+)?\s*(oz|fl\.?\s?oz|g|kg|mg|ml|l|lb|lbs))$",
    re.IGNORECASE,
)
PACK_COUNT_PATTERN = re.compile(
    r"^(\d+\s*-?\s*(pack|pk|count|ct|pcs?|pieces?)|(pack|case|box) of \d+)$",
    re.IGNORECASE,
)


def _field_values(product: ClassificationInput, field: BundleField) -> list[str]:
    if field is BundleField.TITLE:
        return [product.title]
    if field is BundleField.DESCRIPTION:
        return [product.description] if product.description else []
    if field is BundleField.PRODUCT_TYPE:
        return [product.product_type] if product.product_type else []
    return list(product.tags)


def _apply_rule(rule: BundleRule, product: ClassificationInput) -> str | None:
    """Return the signal description for the rule's first match, if any."""
    values = _field_values(product, rule.field)
    if not values:
        return None

    lowered = [v.lower() for v in values]
    for phrase in rule.phrases:
        for original, value in zip(values, lowered):
            if phrase in value:
                return rule.signal_template.format(phrase=phrase, value=original)
    return None


def _variant_label(variant: ProductVariant) -> str | None:
    if variant.title and variant.title.strip():
        return variant.title.strip().lower()
    if variant.options:
        return " / ".join(v.strip().lower() for _, v in variant.options if v.strip()) or None
    return None


def is_quantity_token(label: str) -> bool:
    """Check whether a variant label only expresses size or pack count."""
    return bool(SIZE_PATTERN.match(label) or PACK_COUNT_PATTERN.match(label))


def detect_variant_signals(variants: Sequence[ProductVariant]) -> list[str]:
    """
    Analyze variants for signs of several distinct products.

    Two signal types: distinct variant labels, and distinct values of a
    variety option (flavor, scent, ...). Each fires at most once.

    Size ("Large", "8oz") and pack-count ("6-pack") variants express
    quantity, not variety, and never produce a signal.
    """
    if len(variants) < MIN_VARIETY_VARIANTS:
        return []

    signals: list[str] = []

    labels = {_variant_label(v) for v in variants}
    distinct = [label for label in labels if label and not is_quantity_token(label)]
    if len(distinct) >= MIN_VARIETY_VARIANTS:
        signals.append(f"{len(distinct)} distinct variant types")

    option_values: dict[str, set[str]] = {}
    for variant in variants:
        for name, value in variant.options:
            key = name.strip().lower()
            value = value.strip().lower()
            if key in VARIETY_OPTION_NAMES and value and not is_quantity_token(value):
                option_values.setdefault(key, set()).add(value)

    for key in VARIETY_OPTION_NAMES:
        values = option_values.get(key, set())
        if len(values) >= MIN_VARIETY_VARIANTS:
            signals.append(f"{len(values)} distinct {key} options")
            # one signal for the whole option group
            break

    return signals


def detect_bundle(product: ClassificationInput) -> BundleDetection:
    """
    Detect whether a product is a bundle.

    Args:
        product: The classification input

    Returns:
        BundleDetection with confidence, signals and recommended depth
    """
    signals: list[str] = []
    score = 0.0

    for rule in BUNDLE_RULES:
        signal = _apply_rule(rule, product)
        if signal:
            signals.append(signal)
            score += rule.weight

    variant_signals = detect_variant_signals(product.variants)
    signals.extend(variant_signals)
    score += VARIANT_SIGNAL_WEIGHT * len(variant_signals)

    # Rounding keeps sums such as 0.2 + 0.2 exactly on the threshold
    confidence = min(round(score, 6), 1.0)
    is_bundle = confidence >= BUNDLE_CONFIDENCE_THRESHOLD

    if signals:
        logger.debug(
            "Bundle signals detected",
            title=product.title[:50],
            signals=signals,
            confidence=confidence,
        )

    return BundleDetection(
        is_bundle=is_bundle,
        confidence=confidence,
        signals=signals,
        recommended_max_depth=get_max_depth_for_bundle(is_bundle),
    )


def has_bundle_keywords(text: str) -> bool:
    """Quick check for bundle keywords without full detection."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in BUNDLE_KEYWORDS)


def get_max_depth_for_bundle(is_bundle: bool) -> int:
    """Maximum taxonomy depth: 3 for bundles, 7 otherwise."""
    return BUNDLE_MAX_DEPTH if is_bundle else TAXONOMY_MAX_DEPTH
