"""
SQLAlchemy ORM Models
=====================

Table holding one embedding per taxonomy category.
Uses the pgvector extension for cosine similarity search.

The table is populated by an offline job; the classifier only reads it.
"""

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Default vector size (nomic-embed-text); the deployed size is
# Settings.embedding_dimensions
EMBEDDING_DIMENSIONS = 768


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TaxonomyEmbedding(Base):
    """
    Category embedding.

    Attributes:
        category_code: Unique code, e.g. "fb-1-7-1"
        category_name: Leaf name, e.g. "Juice"
        full_path: Full display path used as the embedded text
        level: Hierarchy depth (0-7)
        embedding: Vector of the full path, sized by the populated index
    """

    __tablename__ = "taxonomy_embeddings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    category_name: Mapped[str] = mapped_column(Text, nullable=False)
    full_path: Mapped[str] = mapped_column(Text, nullable=False)
    level: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(Vector(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<TaxonomyEmbedding(code={self.category_code}, level={self.level})>"
