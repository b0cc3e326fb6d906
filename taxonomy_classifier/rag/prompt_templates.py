"""
Prompt Templates
==================

LangChain prompt templates for category selection and attribute extraction.

Follows:
- DRY: Centralized prompt templates
- KISS: Simple, clear prompts with explicit JSON output format
- Single Responsibility: Only handles prompt construction
"""

from typing import Any

from langchain_core.prompts import PromptTemplate

from taxonomy_classifier.schemas.domain import CategoryCandidate, ClassificationInput
from taxonomy_classifier.utils.text import clean_description

PROMPT_DESCRIPTION_MAX_LENGTH = 300
PROMPT_MAX_VARIANTS = 5
PROMPT_MAX_ATTRIBUTE_VALUES = 10

# =============================================================================
# Category Selection Prompt
# =============================================================================

CLASSIFICATION_SYSTEM_MESSAGE = """You are an expert product categorizer for a retail product taxonomy.
Your task is to select the most specific and accurate category for a product from a list of candidates.

IMPORTANT RULES:
1. Choose the MOST SPECIFIC category that accurately describes the product
2. Think like a shopper browsing the store: classify by the product's physical form and how it is consumed or used, not by how it was produced
3. For bundles and variety packs, choose a broader category that encompasses all items
4. Consider the product type, description, tags and variants when making your decision
5. Only choose a code from the candidate list
6. Confidence should reflect certainty from 0 to 1: 0.9+ = certain, 0.7-0.9 = likely, <0.7 = uncertain
7. Return valid JSON only - no markdown, no explanations outside JSON"""

CLASSIFICATION_USER_TEMPLATE = """## Product Information
{product_info}

## Candidate Categories
{candidates_text}

Select the best category and respond with this exact JSON structure:
{{
  "selected_code": "the category code you chose",
  "confidence": 0.95,
  "reasoning": "Brief explanation of why this category is the best fit"
}}"""

CLASSIFICATION_USER_PROMPT = PromptTemplate.from_template(CLASSIFICATION_USER_TEMPLATE)

# =============================================================================
# Attribute Extraction Prompt
# =============================================================================

ATTRIBUTE_EXTRACTION_TEMPLATE = """## Product
{product_info}

## Assigned Category
{category_path}

## Available Attributes
{attributes_text}

Extract applicable attribute values from the product information.
Only include attributes where you can confidently determine the value.

Respond with this exact JSON structure:
{{
  "attributes": [
    {{"handle": "attribute_handle", "value": "extracted_value", "confidence": 0.9}}
  ]
}}

If no attributes can be extracted, return: {{"attributes": []}}"""

ATTRIBUTE_EXTRACTION_PROMPT = PromptTemplate.from_template(ATTRIBUTE_EXTRACTION_TEMPLATE)


# =============================================================================
# Helper functions
# =============================================================================


def format_product_info(product: ClassificationInput) -> str:
    """
    Format product information for a prompt.

    Args:
        product: Product being classified

    Returns:
        Markdown-ish block with title, type, description, tags and variants
    """
    lines = [f"**Title:** {product.title}"]

    if product.product_type:
        lines.append(f"**Product Type:** {product.product_type}")

    description = clean_description(product.description, PROMPT_DESCRIPTION_MAX_LENGTH)
    if description:
        lines.append(f"**Description:** {description}")

    if product.tags:
        lines.append(f"**Tags:** {', '.join(product.tags)}")

    variant_titles = [v.title for v in product.variants if v.title][:PROMPT_MAX_VARIANTS]
    if variant_titles:
        lines.append(f"**Variants:** {', '.join(variant_titles)}")

    return "\n".join(lines)


def format_candidates_text(candidates: list[CategoryCandidate]) -> str:
    """Format the ranked candidate list, one numbered line per category."""
    if not candidates:
        return "No candidates available."

    return "\n".join(
        f"{i}. **{c.code}** - {c.path} (Level {c.level}, Score: {c.score:.2f})"
        for i, c in enumerate(candidates, 1)
    )


def format_attributes_text(attributes: list[dict[str, Any]]) -> str:
    """Format attribute definitions with up to ten allowed values each."""
    lines = []
    for attr in attributes:
        values = attr.get("values") or []
        values_str = (
            f" (values: {', '.join(values[:PROMPT_MAX_ATTRIBUTE_VALUES])})" if values else ""
        )
        lines.append(f"- **{attr['handle']}**: {attr['name']}{values_str}")
    return "\n".join(lines)


def build_classification_system_prompt() -> str:
    """System prompt for category selection."""
    return CLASSIFICATION_SYSTEM_MESSAGE


def build_classification_user_prompt(
    product: ClassificationInput,
    candidates: list[CategoryCandidate],
) -> str:
    """Render the category selection request for a product and its candidates."""
    return CLASSIFICATION_USER_PROMPT.format(
        product_info=format_product_info(product),
        candidates_text=format_candidates_text(candidates),
    )


def build_attribute_extraction_prompt(
    product: ClassificationInput,
    category_path: str,
    available_attributes: list[dict[str, Any]],
) -> str:
    """
    Render the attribute extraction request.

    Args:
        product: Product being classified
        category_path: Full path of the assigned category
        available_attributes: Dicts with handle, name and optional values

    Returns:
        Prompt text
    """
    return ATTRIBUTE_EXTRACTION_PROMPT.format(
        product_info=format_product_info(product),
        category_path=category_path,
        attributes_text=format_attributes_text(available_attributes),
    )
