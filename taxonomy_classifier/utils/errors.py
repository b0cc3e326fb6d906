"""
Custom Exception Classes
========================

Typed failures surfaced by the classification pipeline.

Fatal pipeline errors (propagate to the caller, no partial result):
    NoCandidatesError, DecisionParseError, CategoryNotFoundError, RetrievalError

Collaborator errors (raised by adapters, converted by the pipeline):
    EmbeddingError, LLMError, DatabaseError
"""

from typing import Any


class ClassifierError(Exception):
    """Base exception for the taxonomy classifier."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NoCandidatesError(ClassifierError):
    """Raised when retrieval produced zero usable category candidates."""

    pass


class DecisionParseError(ClassifierError):
    """Raised when the decision-service output cannot be turned into a decision."""

    pass


class CategoryNotFoundError(ClassifierError):
    """
    Raised when the resolved category code is missing from the hierarchy.

    Indicates the embedding index and the hierarchy data are out of sync.
    """

    pass


class RetrievalError(ClassifierError):
    """Raised when every candidate source failed at the transport level."""

    pass


class EmbeddingError(ClassifierError):
    """Raised when embedding generation fails."""

    pass


class LLMError(ClassifierError):
    """Raised when the decision-service call fails or times out."""

    pass


class DatabaseError(ClassifierError):
    """Raised when vector store operations fail."""

    pass


class ConfigurationError(ClassifierError):
    """Raised when configuration is invalid."""

    pass


class TaxonomyNotLoadedError(ClassifierError):
    """Raised when the hierarchy index is used before it was loaded."""

    pass
