"""
Candidate Generator
===================

Produces a ranked, deduplicated list of category candidates from two
independent sources:

1. Product-type anchor: curated mapping of the merchant type label to a
   category code (fixed high score, a seed rather than a guarantee)
2. Similarity search: embedding of a normalized product text matched
   against pre-computed category embeddings

The merchant type label is deliberately left out of the search text: it
is unreliable and pulls retrieval toward mislabeled categories. It stays
visible to the decision service as prompt context.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from taxonomy_classifier.config.settings import Settings, get_settings
from taxonomy_classifier.schemas.domain import (
    DEFAULT_MAX_CANDIDATES,
    CandidateSource,
    CategoryCandidate,
    ClassificationInput,
)
from taxonomy_classifier.services.ports import EmbeddingProvider, TaxonomyLookup, VectorStore
from taxonomy_classifier.utils.errors import RetrievalError
from taxonomy_classifier.utils.logger import get_logger
from taxonomy_classifier.utils.text import clean_description, is_marketing_tag

logger = get_logger(__name__)

SEARCH_DESCRIPTION_MAX_LENGTH = 500
SEARCH_MAX_TAGS = 5
CHILD_CANDIDATE_SCORE = 0.7


@dataclass(frozen=True)
class CandidateRetrieval:
    """
    Merged candidates plus the best similarity-search hit.

    The merge keeps one entry per code, so an anchored code hides its
    own search similarity. top_match is taken before merging and is
    None when the search failed or found nothing.
    """

    candidates: list[CategoryCandidate]
    top_match: CategoryCandidate | None = None


def build_search_text(product: ClassificationInput) -> str:
    """
    Build the text embedded for similarity search.

    Title, cleaned description (500 chars max) and up to five
    non-marketing tags. The product type is excluded.
    """
    parts = [product.title.strip()]

    description = clean_description(product.description, SEARCH_DESCRIPTION_MAX_LENGTH)
    if description:
        parts.append(description)

    product_tags = [t.strip() for t in product.tags if t.strip() and not is_marketing_tag(t)]
    if product_tags:
        parts.append(" ".join(product_tags[:SEARCH_MAX_TAGS]))

    return " ".join(parts)


def merge_candidates(
    *sources: Iterable[CategoryCandidate],
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> list[CategoryCandidate]:
    """
    Merge candidate lists by category code.

    Keeps the highest score per code (first seen wins ties), sorts by
    score descending and truncates to max_candidates.
    """
    by_code: dict[str, CategoryCandidate] = {}
    for source in sources:
        for candidate in source:
            existing = by_code.get(candidate.code)
            if existing is None or candidate.score > existing.score:
                by_code[candidate.code] = candidate

    # sorted() is stable, so ties keep insertion order
    ranked = sorted(by_code.values(), key=lambda c: c.score, reverse=True)
    return ranked[:max_candidates]


class CandidateGenerator:
    """
    Two-source candidate retrieval.

    Usage:
        generator = CandidateGenerator(vector_service, vector_service, taxonomy, settings)
        candidates = await generator.get_candidates(product, max_candidates=10, max_depth=3)
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        vector_store: VectorStore,
        taxonomy: TaxonomyLookup,
        settings: Settings | None = None,
    ) -> None:
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._taxonomy = taxonomy
        self._settings = settings or get_settings()

    def match_product_type(self, product: ClassificationInput) -> str | None:
        """Category code mapped from the product type, if any."""
        if not product.product_type or not product.product_type.strip():
            return None
        try:
            return self._taxonomy.by_type_label(product.product_type)
        except Exception as e:
            logger.warning("Product type lookup failed", error=str(e))
            return None

    def get_product_type_anchor(
        self,
        product: ClassificationInput,
        max_depth: int | None = None,
    ) -> list[CategoryCandidate]:
        """
        Look up the product-type anchor candidate.

        Returns an empty list when the type is missing, unmapped, points
        at an unknown category or lies deeper than max_depth.
        """
        if not product.product_type or not product.product_type.strip():
            return []

        code = self._taxonomy.by_type_label(product.product_type)
        if code is None:
            return []

        category = self._taxonomy.by_code(code)
        if category is None:
            logger.warning(
                "Product type mapped to unknown category",
                product_type=product.product_type,
                category_code=code,
            )
            return []

        if max_depth is not None and category.level > max_depth:
            logger.debug(
                "Product type anchor deeper than allowed",
                category_code=code,
                level=category.level,
                max_depth=max_depth,
            )
            return []

        return [
            CategoryCandidate(
                code=code,
                path=category.full_name,
                level=category.level,
                source=CandidateSource.PRODUCT_TYPE,
                score=self._settings.product_type_anchor_score,
            )
        ]

    async def get_embedding_candidates(
        self,
        product: ClassificationInput,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        max_depth: int | None = None,
    ) -> list[CategoryCandidate]:
        """
        Similarity-search candidates.

        Raises:
            Whatever the embedding or vector store adapters raise
        """
        search_text = build_search_text(product)
        logger.debug("Search text built", search_text=search_text[:200])

        embedding = await self._embeddings.embed_query(search_text)
        results = await self._vector_store.match_categories(
            query_embedding=embedding,
            match_threshold=self._settings.similarity_threshold,
            match_count=max_candidates,
            max_level=max_depth,
            category_prefix=self._settings.category_prefix,
        )

        return [
            CategoryCandidate(
                code=r.category_code,
                path=r.full_path,
                level=r.level,
                source=CandidateSource.EMBEDDING,
                score=min(1.0, max(0.0, r.similarity)),
            )
            for r in results
        ]

    async def get_candidates(
        self,
        product: ClassificationInput,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        max_depth: int | None = None,
    ) -> list[CategoryCandidate]:
        """Get merged candidates from both sources. See retrieve()."""
        retrieval = await self.retrieve(product, max_candidates, max_depth)
        return retrieval.candidates

    async def retrieve(
        self,
        product: ClassificationInput,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        max_depth: int | None = None,
    ) -> CandidateRetrieval:
        """
        Get merged candidates and the top similarity-search hit.

        A failing or timed-out similarity search counts as zero
        candidates. An empty result is returned as-is; deciding that it
        is a failure is the caller's job.

        Raises:
            RetrievalError: If both sources failed
        """
        anchor_error: Exception | None = None
        search_error: Exception | None = None

        try:
            anchor = self.get_product_type_anchor(product, max_depth)
        except Exception as e:
            logger.warning("Product type lookup failed", error=str(e))
            anchor_error = e
            anchor = []

        try:
            similar = await self.get_embedding_candidates(product, max_candidates, max_depth)
        except Exception as e:
            logger.warning("Embedding search failed, continuing without it", error=str(e))
            search_error = e
            similar = []

        if anchor_error is not None and search_error is not None:
            raise RetrievalError(
                message="All candidate sources failed",
                details={
                    "product_type_error": str(anchor_error),
                    "embedding_error": str(search_error),
                },
            ) from search_error

        candidates = merge_candidates(anchor, similar, max_candidates=max_candidates)

        logger.info(
            "Candidates retrieved",
            anchor_count=len(anchor),
            embedding_count=len(similar),
            merged_count=len(candidates),
            top_code=candidates[0].code if candidates else None,
        )
        return CandidateRetrieval(
            candidates=candidates,
            top_match=max(similar, key=lambda c: c.score, default=None),
        )

    def get_child_candidates(self, parent_code: str) -> list[CategoryCandidate]:
        """Descendants of a category, for drilling down from an anchor."""
        return [
            CategoryCandidate(
                code=child.code,
                path=child.full_name,
                level=child.level,
                source=CandidateSource.MANUAL,
                score=CHILD_CANDIDATE_SCORE,
            )
            for child in self._taxonomy.children_of(parent_code)
            if child.code
        ]
