"""
Database Package
================

Database models, connection management, and repositories.
"""

from taxonomy_classifier.db.connection import DatabaseManager
from taxonomy_classifier.db.models import Base, TaxonomyEmbedding

__all__ = [
    # Models
    "Base",
    "TaxonomyEmbedding",
    # Connection
    "DatabaseManager",
]
