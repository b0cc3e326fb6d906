"""
Database Repositories
=====================

Data access layer following repository pattern.

Components:
    - TaxonomyEmbeddingsRepository: Similarity search over taxonomy_embeddings
"""

from taxonomy_classifier.db.repositories.taxonomy_embeddings_repo import (
    TaxonomyEmbeddingsRepository,
)

__all__ = ["TaxonomyEmbeddingsRepository"]
