"""
Unit Tests for CandidateGenerator
=================================

Tests search text construction, the product-type anchor, similarity
search degradation and candidate merging.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from taxonomy_classifier.schemas.domain import (
    CandidateSource,
    CategoryCandidate,
    ClassificationInput,
)
from taxonomy_classifier.schemas.taxonomy import CategorySearchResult
from taxonomy_classifier.services.candidate_generator import (
    CandidateGenerator,
    build_search_text,
    merge_candidates,
)
from taxonomy_classifier.utils.errors import DatabaseError, EmbeddingError, RetrievalError


def _candidate(code: str, score: float, source=CandidateSource.EMBEDDING) -> CategoryCandidate:
    return CategoryCandidate(code=code, path=code, level=code.count("-"), source=source, score=score)


def _search_result(code: str, similarity: float) -> CategorySearchResult:
    return CategorySearchResult(
        category_code=code,
        category_name=code,
        full_path=f"path {code}",
        level=code.count("-"),
        similarity=similarity,
    )


@pytest.fixture
def generator(mock_embeddings, mock_vector_store, taxonomy_index, test_settings):
    """Generator wired to fakes."""
    return CandidateGenerator(mock_embeddings, mock_vector_store, taxonomy_index, test_settings)


class TestBuildSearchText:
    """Tests for build_search_text."""

    def test_combines_title_description_tags(self, chocolate_bar):
        """Test the full search string."""
        text = build_search_text(chocolate_bar)

        assert text.startswith("Organic Dark Chocolate Bar 70% Rich dark chocolate")
        assert text.endswith("chocolate organic")

    def test_excludes_product_type(self):
        """Test that the merchant type label is not embedded."""
        text = build_search_text(ClassificationInput(title="Bar", product_type="Snacks"))

        assert "Snacks" not in text

    def test_excludes_marketing_tags(self):
        """Test that merchandising tags are dropped."""
        product = ClassificationInput(
            title="Tea",
            tags=["Staff Pick", "best-seller", "NEW", "sale", "green tea", "Featured"],
        )

        assert build_search_text(product) == "Tea green tea"

    def test_at_most_five_tags(self):
        """Test the tag limit."""
        product = ClassificationInput(title="Tea", tags=[f"tag{i}" for i in range(8)])

        assert build_search_text(product) == "Tea tag0 tag1 tag2 tag3 tag4"

    def test_description_limited_to_500(self):
        """Test the description limit."""
        text = build_search_text(ClassificationInput(title="T", description="y" * 900))

        assert text == "T " + "y" * 500


class TestMergeCandidates:
    """Tests for merge_candidates."""

    def test_keeps_highest_score_per_code(self):
        """Test deduplication by code."""
        anchor = [_candidate("fb-2-3-2", 0.9, CandidateSource.PRODUCT_TYPE)]
        similar = [_candidate("fb-2-3-2", 0.95), _candidate("fb-2-3", 0.6)]

        merged = merge_candidates(anchor, similar)

        assert [c.code for c in merged] == ["fb-2-3-2", "fb-2-3"]
        assert merged[0].score == 0.95
        assert merged[0].source is CandidateSource.EMBEDDING

    def test_first_source_wins_ties(self):
        """Test that equal scores keep the earlier candidate."""
        anchor = [_candidate("fb-1", 0.9, CandidateSource.PRODUCT_TYPE)]
        similar = [_candidate("fb-1", 0.9)]

        merged = merge_candidates(anchor, similar)

        assert merged[0].source is CandidateSource.PRODUCT_TYPE

    def test_sorted_and_truncated(self):
        """Test ordering and max_candidates."""
        merged = merge_candidates(
            [_candidate("fb-1", 0.2), _candidate("fb-2", 0.8), _candidate("fb-3", 0.5)],
            max_candidates=2,
        )

        assert [c.code for c in merged] == ["fb-2", "fb-3"]

    def test_empty_sources(self):
        """Test that no input yields no candidates."""
        assert merge_candidates([], []) == []


class TestProductTypeAnchor:
    """Tests for the product-type anchor."""

    def test_anchor_candidate(self, generator, chocolate_bar):
        """Test that a mapped type becomes a 0.9 anchor."""
        anchor = generator.get_product_type_anchor(chocolate_bar)

        assert len(anchor) == 1
        assert anchor[0].code == "fb-2-3-2"
        assert anchor[0].score == 0.9
        assert anchor[0].source is CandidateSource.PRODUCT_TYPE
        assert anchor[0].level == 3

    def test_unmapped_type(self, generator):
        """Test that unknown labels produce no anchor."""
        assert generator.get_product_type_anchor(ClassificationInput(title="X", product_type="Widgets")) == []

    def test_missing_type(self, generator):
        """Test products without a type."""
        assert generator.get_product_type_anchor(ClassificationInput(title="X")) == []
        assert generator.get_product_type_anchor(ClassificationInput(title="X", product_type="  ")) == []

    def test_mapping_to_unknown_category(self, generator):
        """Test that a stale mapping is ignored."""
        assert generator.get_product_type_anchor(ClassificationInput(title="X", product_type="Mystery")) == []

    def test_anchor_deeper_than_max_depth_dropped(self, generator):
        """Test the depth ceiling applies to the anchor."""
        product = ClassificationInput(title="X", product_type="Dark Chocolate")

        assert generator.get_product_type_anchor(product, max_depth=3) == []
        assert len(generator.get_product_type_anchor(product, max_depth=4)) == 1

    def test_match_product_type(self, generator, chocolate_bar):
        """Test the mapped code used for output signals."""
        assert generator.match_product_type(chocolate_bar) == "fb-2-3-2"
        assert generator.match_product_type(ClassificationInput(title="X")) is None


class TestGetCandidates:
    """Tests for get_candidates."""

    @pytest.mark.asyncio
    async def test_merges_both_sources(self, generator, mock_embeddings, mock_vector_store, chocolate_bar):
        """Test the happy path with anchor and search results."""
        mock_vector_store.match_categories.return_value = [
            _search_result("fb-2-3-2-1", 0.82),
            _search_result("fb-2-3", 0.64),
        ]

        candidates = await generator.get_candidates(chocolate_bar, max_candidates=10)

        assert [c.code for c in candidates] == ["fb-2-3-2", "fb-2-3-2-1", "fb-2-3"]
        mock_embeddings.embed_query.assert_awaited_once_with(build_search_text(chocolate_bar))

    @pytest.mark.asyncio
    async def test_search_parameters(self, generator, mock_vector_store, chocolate_bar):
        """Test threshold, limit, depth and prefix passed to the store."""
        await generator.get_candidates(chocolate_bar, max_candidates=7, max_depth=3)

        kwargs = mock_vector_store.match_categories.call_args.kwargs
        assert kwargs["match_threshold"] == 0.3
        assert kwargs["match_count"] == 7
        assert kwargs["max_level"] == 3
        assert kwargs["category_prefix"] == "fb-"
        assert len(kwargs["query_embedding"]) == 768

    @pytest.mark.asyncio
    async def test_search_failure_degrades_to_anchor(self, generator, mock_vector_store, chocolate_bar):
        """Test that a failing store counts as zero candidates."""
        mock_vector_store.match_categories.side_effect = DatabaseError("connection refused")

        candidates = await generator.get_candidates(chocolate_bar)

        assert [c.code for c in candidates] == ["fb-2-3-2"]

    @pytest.mark.asyncio
    async def test_embedding_failure_without_anchor_is_empty(self, generator, mock_embeddings):
        """Test that a failed search and no anchor yields an empty list."""
        mock_embeddings.embed_query.side_effect = EmbeddingError("timed out")

        candidates = await generator.get_candidates(ClassificationInput(title="Mystery box"))

        assert candidates == []

    @pytest.mark.asyncio
    async def test_both_sources_failing_raises(self, mock_embeddings, mock_vector_store, test_settings, chocolate_bar):
        """Test that RetrievalError requires both sources to fail."""
        taxonomy = MagicMock()
        taxonomy.by_type_label.side_effect = RuntimeError("index unavailable")
        mock_embeddings.embed_query.side_effect = EmbeddingError("ollama down")
        generator = CandidateGenerator(mock_embeddings, mock_vector_store, taxonomy, test_settings)

        with pytest.raises(RetrievalError) as exc_info:
            await generator.get_candidates(chocolate_bar)

        assert "embedding_error" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_similarity_clamped(self, generator, mock_vector_store):
        """Test that out-of-range similarities are clamped into candidate scores."""
        mock_vector_store.match_categories.return_value = [_search_result("fb-1", 1.0000002)]

        candidates = await generator.get_candidates(ClassificationInput(title="Coffee"))

        assert candidates[0].score == 1.0


class TestRetrieve:
    """Tests for retrieve and its top similarity-search hit."""

    @pytest.mark.asyncio
    async def test_top_match_survives_anchor_merge(self, generator, mock_vector_store, chocolate_bar):
        """Test that an anchored code keeps its own search similarity."""
        mock_vector_store.match_categories.return_value = [
            _search_result("fb-2-3-2", 0.77),
            _search_result("fb-2-3", 0.64),
        ]

        retrieval = await generator.retrieve(chocolate_bar)

        assert retrieval.candidates[0].source == CandidateSource.PRODUCT_TYPE
        assert retrieval.candidates[0].score == 0.9
        assert retrieval.top_match.code == "fb-2-3-2"
        assert retrieval.top_match.score == 0.77
        assert retrieval.top_match.source == CandidateSource.EMBEDDING

    @pytest.mark.asyncio
    async def test_anchor_only_has_no_top_match(self, generator, mock_embeddings, chocolate_bar):
        """Test that a failed search leaves top_match empty."""
        mock_embeddings.embed_query.side_effect = EmbeddingError("timed out")

        retrieval = await generator.retrieve(chocolate_bar)

        assert [c.code for c in retrieval.candidates] == ["fb-2-3-2"]
        assert retrieval.top_match is None


class TestGetEmbeddingCandidates:
    """Tests for the similarity-search source on its own."""

    @pytest.mark.asyncio
    async def test_maps_search_rows(self, generator, mock_vector_store):
        """Test that search rows become embedding candidates in order."""
        mock_vector_store.match_categories.return_value = [
            _search_result("fb-2-3-2", 0.81),
            _search_result("fb-2-3", 0.64),
        ]

        candidates = await generator.get_embedding_candidates(ClassificationInput(title="Dark chocolate bar"))

        assert [c.code for c in candidates] == ["fb-2-3-2", "fb-2-3"]
        assert all(c.source == CandidateSource.EMBEDDING for c in candidates)
        assert candidates[0].path == "path fb-2-3-2"

    @pytest.mark.asyncio
    async def test_adapter_errors_propagate(self, generator, mock_vector_store):
        """Test that search failures are not swallowed at this level."""
        mock_vector_store.match_categories.side_effect = DatabaseError("pool exhausted")

        with pytest.raises(DatabaseError):
            await generator.get_embedding_candidates(ClassificationInput(title="Coffee"))


class TestChildCandidates:
    """Tests for get_child_candidates."""

    def test_children_are_manual_candidates(self, generator):
        """Test drill-down candidates."""
        children = generator.get_child_candidates("fb-2-3")

        assert [c.code for c in children] == ["fb-2-3-2", "fb-2-3-2-1"]
        assert all(c.source is CandidateSource.MANUAL for c in children)
        assert all(c.score == 0.7 for c in children)

    def test_leaf_has_no_children(self, generator):
        """Test a leaf category."""
        assert generator.get_child_candidates("fb-1-3-1") == []


@pytest.mark.asyncio
async def test_generator_accepts_any_port_implementation(test_settings, taxonomy_index):
    """Test that plain AsyncMock collaborators satisfy the generator."""
    embeddings = AsyncMock()
    embeddings.embed_query = AsyncMock(return_value=[0.0] * 768)
    store = AsyncMock()
    store.match_categories = AsyncMock(return_value=[_search_result("fb-1-3", 0.5)])

    generator = CandidateGenerator(embeddings, store, taxonomy_index, test_settings)
    candidates = await generator.get_candidates(ClassificationInput(title="Espresso"))

    assert candidates[0].code == "fb-1-3"
    assert candidates[0].source is CandidateSource.EMBEDDING
