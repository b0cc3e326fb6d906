"""
Vector Service
===============

Service for generating embeddings and searching category embeddings.
Uses Ollama for embedding generation and pgvector for similarity search.

Follows:
- Single Responsibility: Only handles embeddings and similarity search
- Dependency Inversion: Depends on abstractions (TaxonomyEmbeddingsRepository)
"""

import asyncio
import time
from typing import Any

from langchain_ollama import OllamaEmbeddings

from taxonomy_classifier.config.settings import Settings, get_settings
from taxonomy_classifier.db.connection import DatabaseManager
from taxonomy_classifier.db.repositories.taxonomy_embeddings_repo import (
    TaxonomyEmbeddingsRepository,
)
from taxonomy_classifier.schemas.taxonomy import CategorySearchResult
from taxonomy_classifier.utils.errors import DatabaseError, EmbeddingError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class VectorService:
    """
    Embedding generation and category similarity search.

    Architecture:
        VectorService → OllamaEmbeddings (LangChain) → Ollama API
                     → TaxonomyEmbeddingsRepository → PostgreSQL + pgvector

    Usage:
        service = VectorService(db, settings)
        embedding = await service.embed_query("Organic dark chocolate bar")
        results = await service.match_categories(embedding, 0.3, 10)
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: Settings | None = None,
        embeddings: OllamaEmbeddings | None = None,
    ) -> None:
        """
        Initialize VectorService.

        Args:
            db: Initialized database manager
            settings: Application settings (uses default if not provided)
            embeddings: Optional preconfigured LangChain embeddings client
        """
        self._db = db
        self._settings = settings or get_settings()

        self._embeddings = embeddings or OllamaEmbeddings(
            model=self._settings.ollama_embedding_model,
            base_url=self._settings.ollama_base_url,
        )

        self._embedding_dimensions = self._settings.embedding_dimensions
        self._model_name = self._settings.ollama_embedding_model

        logger.debug(
            "VectorService initialized",
            model=self._model_name,
            dimensions=self._embedding_dimensions,
            ollama_url=self._settings.ollama_base_url,
        )

    async def embed_query(self, text: str) -> list[float]:
        """
        Generate embedding for a single text query.

        Args:
            text: Text to embed

        Returns:
            Float vector of the configured dimensionality

        Raises:
            EmbeddingError: If embedding generation fails or times out
        """
        if not text or not text.strip():
            raise EmbeddingError(
                message="Cannot embed empty text",
                details={"text": text},
            )

        try:
            logger.debug("Generating embedding", text_length=len(text))

            embeddings = await asyncio.wait_for(
                self._embeddings.aembed_documents([text]),
                timeout=self._settings.embedding_timeout,
            )
            embedding = embeddings[0] if embeddings else []

            if len(embedding) != self._embedding_dimensions:
                raise EmbeddingError(
                    message=f"Unexpected embedding dimensions: {len(embedding)}",
                    details={
                        "expected": self._embedding_dimensions,
                        "actual": len(embedding),
                    },
                )

            return embedding

        except EmbeddingError:
            raise
        except TimeoutError as e:
            logger.warning("Embedding generation timed out", timeout=self._settings.embedding_timeout)
            raise EmbeddingError(
                message="Embedding generation timed out",
                details={"timeout": self._settings.embedding_timeout},
            ) from e
        except Exception as e:
            logger.error(
                "Embedding generation failed",
                error=str(e),
                text_preview=text[:50],
            )
            raise EmbeddingError(
                message="Failed to generate embedding",
                details={"error": str(e), "text_preview": text[:50]},
            ) from e

    async def match_categories(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        max_level: int | None = None,
        category_prefix: str | None = None,
    ) -> list[CategorySearchResult]:
        """
        Search category embeddings by cosine similarity.

        Raises:
            DatabaseError: If the search fails or times out
        """
        async def _search() -> list[CategorySearchResult]:
            async with self._db.session() as session:
                repo = TaxonomyEmbeddingsRepository(
                    session,
                    ivfflat_probes=self._settings.ivfflat_probes,
                    dimensions=self._embedding_dimensions,
                )
                return await repo.match_categories(
                    query_embedding=query_embedding,
                    match_threshold=match_threshold,
                    match_count=match_count,
                    max_level=max_level,
                    category_prefix=category_prefix,
                )

        try:
            return await asyncio.wait_for(_search(), timeout=self._settings.vector_search_timeout)
        except TimeoutError as e:
            logger.warning(
                "Similarity search timed out", timeout=self._settings.vector_search_timeout
            )
            raise DatabaseError(
                message="Similarity search timed out",
                details={"timeout": self._settings.vector_search_timeout},
            ) from e

    async def get_embedding_count(self) -> int:
        """Number of categories with an embedding."""
        async with self._db.session() as session:
            return await TaxonomyEmbeddingsRepository(session).count()

    async def health_check(self) -> dict[str, Any]:
        """
        Check VectorService health.

        Verifies:
        - Ollama connection (can generate embedding)
        - Database connection (can count embeddings)
        """
        result: dict[str, Any] = {
            "service": "vector_service",
            "status": "healthy",
            "model": self._model_name,
            "dimensions": self._embedding_dimensions,
            "checks": {},
        }

        try:
            start = time.perf_counter()
            await self.embed_query("health check test")
            latency = (time.perf_counter() - start) * 1000
            result["checks"]["ollama"] = {"status": "healthy", "latency_ms": round(latency, 2)}
        except EmbeddingError as e:
            result["status"] = "unhealthy"
            result["checks"]["ollama"] = {"status": "unhealthy", "error": e.message}

        try:
            start = time.perf_counter()
            count = await self.get_embedding_count()
            latency = (time.perf_counter() - start) * 1000
            result["checks"]["database"] = {
                "status": "healthy",
                "latency_ms": round(latency, 2),
                "embedding_count": count,
            }
        except Exception as e:
            result["status"] = "unhealthy"
            result["checks"]["database"] = {"status": "unhealthy", "error": str(e)}

        return result
