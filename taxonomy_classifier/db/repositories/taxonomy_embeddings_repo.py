"""
Taxonomy Embeddings Repository
==============================

Data access layer for the taxonomy_embeddings table.
Provides nearest-neighbour category search using pgvector.

Follows Repository Pattern: Abstracts database operations.
"""

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy_classifier.db.models import EMBEDDING_DIMENSIONS, TaxonomyEmbedding
from taxonomy_classifier.schemas.taxonomy import CategorySearchResult
from taxonomy_classifier.utils.errors import DatabaseError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class TaxonomyEmbeddingsRepository:
    """
    Repository for taxonomy_embeddings table operations.

    Uses cosine distance (<=>) for semantic search:
        similarity = 1 - cosine_distance

    Table Schema:
        category_code: str (unique)
        category_name: str
        full_path: str
        level: int (0-7)
        embedding: vector(768)
    """

    def __init__(
        self,
        session: AsyncSession,
        ivfflat_probes: int = 10,
        dimensions: int = EMBEDDING_DIMENSIONS,
    ) -> None:
        """
        Initialize repository with async session.

        Args:
            session: SQLAlchemy async session
            ivfflat_probes: Index clusters searched per query (default is 1 in pgvector)
            dimensions: Vector size of the populated index
        """
        self._session = session
        self._ivfflat_probes = ivfflat_probes
        self._dimensions = dimensions

    async def match_categories(
        self,
        query_embedding: list[float],
        match_threshold: float = 0.3,
        match_count: int = 10,
        max_level: int | None = None,
        category_prefix: str | None = None,
    ) -> list[CategorySearchResult]:
        """
        Search for categories similar to a query embedding.

        Args:
            query_embedding: Query vector
            match_threshold: Minimum similarity (exclusive)
            match_count: Maximum number of rows
            max_level: Only categories at or above this depth
            category_prefix: Only codes starting with this prefix (e.g. "fb-")

        Returns:
            Results sorted by similarity (highest first)

        Raises:
            DatabaseError: If the query fails
        """
        if len(query_embedding) != self._dimensions:
            raise ValueError(
                f"Query embedding must be {self._dimensions} dimensions, "
                f"got {len(query_embedding)}"
            )

        distance = TaxonomyEmbedding.embedding.cosine_distance(query_embedding)
        similarity = (1 - distance).label("similarity")

        stmt = (
            select(
                TaxonomyEmbedding.category_code,
                TaxonomyEmbedding.category_name,
                TaxonomyEmbedding.full_path,
                TaxonomyEmbedding.level,
                similarity,
            )
            .where(TaxonomyEmbedding.embedding.is_not(None))
            .where((1 - distance) > match_threshold)
            .order_by(distance)
            .limit(match_count)
        )
        if max_level is not None:
            stmt = stmt.where(TaxonomyEmbedding.level <= max_level)
        if category_prefix:
            stmt = stmt.where(TaxonomyEmbedding.category_code.startswith(category_prefix))

        try:
            # SET does not accept bind parameters; the value is an int from settings
            await self._session.execute(
                text(f"SET LOCAL ivfflat.probes = {int(self._ivfflat_probes)}")
            )
            result = await self._session.execute(stmt)
            rows = result.mappings().fetchall()
        except Exception as e:
            logger.error("Category similarity search failed", error=str(e))
            raise DatabaseError(
                message="Category similarity search failed",
                details={"error": str(e)},
            ) from e

        results = [
            CategorySearchResult(
                category_code=row["category_code"],
                category_name=row["category_name"],
                full_path=row["full_path"],
                level=row["level"],
                similarity=float(row["similarity"]),
            )
            for row in rows
        ]

        logger.debug(
            "Similarity search completed",
            results_count=len(results),
            match_count=match_count,
            max_level=max_level,
            category_prefix=category_prefix,
        )
        return results

    async def count(self) -> int:
        """Number of categories that have an embedding."""
        stmt = select(func.count()).select_from(TaxonomyEmbedding).where(
            TaxonomyEmbedding.embedding.is_not(None)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()
