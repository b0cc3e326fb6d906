"""
Collaborator Ports
==================

Interfaces of the external services the pipeline depends on.
Concrete adapters live in taxonomy_classifier.rag and
taxonomy_classifier.services.taxonomy_index; tests substitute fakes.
"""

from typing import Protocol, runtime_checkable

from taxonomy_classifier.schemas.taxonomy import (
    CategorySearchResult,
    TaxonomyAttribute,
    TaxonomyCategory,
)


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Generates fixed-dimension vectors for text."""

    async def embed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class VectorStore(Protocol):
    """Nearest-neighbour search over pre-computed category embeddings."""

    async def match_categories(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        max_level: int | None = None,
        category_prefix: str | None = None,
    ) -> list[CategorySearchResult]: ...


@runtime_checkable
class DecisionProvider(Protocol):
    """Natural-language decision service."""

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str = "standard",
    ) -> str: ...


@runtime_checkable
class TaxonomyLookup(Protocol):
    """Read-only category hierarchy."""

    def by_code(self, code: str) -> TaxonomyCategory | None: ...

    def by_type_label(self, label: str) -> str | None: ...

    def attribute_by_handle(self, handle: str) -> TaxonomyAttribute | None: ...

    def children_of(self, code: str) -> list[TaxonomyCategory]: ...
