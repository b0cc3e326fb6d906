"""
Test Configuration and Fixtures
================================

Shared pytest fixtures for taxonomy classifier tests.
"""

import json
from unittest.mock import AsyncMock

import pytest

from taxonomy_classifier.config.settings import Settings
from taxonomy_classifier.schemas.domain import (
    CandidateSource,
    CategoryCandidate,
    ClassificationInput,
)
from taxonomy_classifier.schemas.taxonomy import ProductTypeMapping, TaxonomyData
from taxonomy_classifier.services.context import ClassifierContext
from taxonomy_classifier.services.taxonomy_index import TaxonomyIndex

GID = "gid://shopify/TaxonomyCategory/"
ATTR_GID = "gid://shopify/TaxonomyAttribute/"


def _category(code: str, level: int, name: str, full_name: str, **extra) -> dict:
    return {
        "id": f"{GID}{code}",
        "level": level,
        "name": name,
        "full_name": full_name,
        **extra,
    }


@pytest.fixture
def taxonomy_data() -> dict:
    """Small slice of taxonomy.json: one vertical, two branches."""
    return {
        "version": "2024-07",
        "verticals": [
            {
                "name": "Food, Beverages & Tobacco",
                "prefix": "fb",
                "categories": [
                    _category("fb", 0, "Food, Beverages & Tobacco", "Food, Beverages & Tobacco"),
                    _category("fb-1", 1, "Beverages", "Food, Beverages & Tobacco > Beverages"),
                    _category(
                        "fb-1-3",
                        2,
                        "Coffee",
                        "Food, Beverages & Tobacco > Beverages > Coffee",
                    ),
                    _category(
                        "fb-1-3-1",
                        3,
                        "Coffee Beans",
                        "Food, Beverages & Tobacco > Beverages > Coffee > Coffee Beans",
                    ),
                    _category("fb-2", 1, "Food Items", "Food, Beverages & Tobacco > Food Items"),
                    _category(
                        "fb-2-3",
                        2,
                        "Candy & Chocolate",
                        "Food, Beverages & Tobacco > Food Items > Candy & Chocolate",
                    ),
                    _category(
                        "fb-2-3-2",
                        3,
                        "Chocolate",
                        "Food, Beverages & Tobacco > Food Items > Candy & Chocolate > Chocolate",
                        attributes=[
                            {"id": f"{ATTR_GID}1", "name": "Flavor", "handle": "flavor"},
                            {"id": f"{ATTR_GID}2", "name": "Dietary preferences"},
                        ],
                    ),
                    _category(
                        "fb-2-3-2-1",
                        4,
                        "Dark Chocolate",
                        "Food, Beverages & Tobacco > Food Items > Candy & Chocolate > "
                        "Chocolate > Dark Chocolate",
                    ),
                ],
            }
        ],
        "attributes": [
            {
                "id": f"{ATTR_GID}1",
                "name": "Flavor",
                "handle": "flavor",
                "values": [
                    {"id": "v1", "name": "Dark"},
                    {"id": "v2", "name": "Milk"},
                    {"id": "v3", "name": "Mint"},
                ],
            },
            {
                "id": f"{ATTR_GID}2",
                "name": "Dietary preferences",
                "handle": "dietary_preferences",
                "values": [
                    {"id": "v4", "name": "Organic"},
                    {"id": "v5", "name": "Vegan"},
                ],
            },
        ],
    }


@pytest.fixture
def product_type_mappings() -> list[dict]:
    """Curated product type table, in the on-disk camelCase layout."""
    return [
        {"productType": "Chocolate", "categoryCode": "fb-2-3-2"},
        {"productType": "Dark Chocolate", "categoryCode": "fb-2-3-2-1", "maxDepth": 4},
        {"productType": "Coffee", "categoryCode": "fb-1-3"},
        {"productType": "Mystery", "categoryCode": "fb-9-9"},
    ]


@pytest.fixture
def taxonomy_index(taxonomy_data, product_type_mappings) -> TaxonomyIndex:
    """In-memory hierarchy built from the sample data."""
    return TaxonomyIndex(
        TaxonomyData.model_validate(taxonomy_data),
        [ProductTypeMapping.model_validate(m) for m in product_type_mappings],
    )


@pytest.fixture
def taxonomy_files(tmp_path, taxonomy_data, product_type_mappings):
    """Sample data written to disk as taxonomy.json + mapping table."""
    taxonomy_path = tmp_path / "taxonomy.json"
    mappings_path = tmp_path / "producttype-mappings.json"
    taxonomy_path.write_text(json.dumps(taxonomy_data), encoding="utf-8")
    mappings_path.write_text(json.dumps({"mappings": product_type_mappings}), encoding="utf-8")
    return taxonomy_path, mappings_path


@pytest.fixture
def test_settings(taxonomy_files) -> Settings:
    """Real settings pointing at the sample taxonomy files."""
    taxonomy_path, mappings_path = taxonomy_files
    return Settings(
        environment="development",
        log_level="DEBUG",
        taxonomy_json_path=str(taxonomy_path),
        product_type_mappings_path=str(mappings_path),
    )


@pytest.fixture
def mock_embeddings():
    """Embedding provider returning a fixed 768-dimensional vector."""
    provider = AsyncMock()
    provider.embed_query = AsyncMock(return_value=[0.1] * 768)
    return provider


@pytest.fixture
def mock_vector_store():
    """Vector store with no matches by default."""
    store = AsyncMock()
    store.match_categories = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mock_decision():
    """Decision service with a canned selection."""
    decision = AsyncMock()
    decision.complete = AsyncMock(
        return_value='{"selected_code": "fb-2-3-2", "confidence": 0.9, "reasoning": "Chocolate bar"}'
    )
    return decision


@pytest.fixture
def classifier_context(
    test_settings, mock_embeddings, mock_vector_store, mock_decision, taxonomy_index
) -> ClassifierContext:
    """Context built entirely from fakes; never touches a database."""
    return ClassifierContext(
        test_settings,
        embeddings=mock_embeddings,
        vector_store=mock_vector_store,
        decision=mock_decision,
        taxonomy=taxonomy_index,
    )


@pytest.fixture
def chocolate_bar() -> ClassificationInput:
    """Plain single product."""
    return ClassificationInput(
        title="Organic Dark Chocolate Bar 70%",
        description="<p>Rich dark chocolate made with <b>organic</b> cacao &amp; cane sugar.</p>",
        tags=["chocolate", "organic", "Best Seller"],
        product_type="Chocolate",
    )


@pytest.fixture
def sample_candidates() -> list[CategoryCandidate]:
    """Ranked candidates as the generator would return them."""
    return [
        CategoryCandidate(
            code="fb-2-3-2",
            path="Food, Beverages & Tobacco > Food Items > Candy & Chocolate > Chocolate",
            level=3,
            source=CandidateSource.PRODUCT_TYPE,
            score=0.9,
        ),
        CategoryCandidate(
            code="fb-2-3",
            path="Food, Beverages & Tobacco > Food Items > Candy & Chocolate",
            level=2,
            source=CandidateSource.EMBEDDING,
            score=0.72,
        ),
    ]
