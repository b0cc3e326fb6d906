"""
RAG Core
========

Vector embeddings, similarity search, and LLM category selection.

Components:
    - VectorService: Embedding generation and similarity search
    - DecisionService: Chat model adapter
    - prompt_templates: LangChain prompt templates for selection and attributes
    - response_parser: Tolerant parsing of LLM output into typed results
"""

from taxonomy_classifier.rag.decision_service import DecisionService
from taxonomy_classifier.rag.prompt_templates import (
    build_attribute_extraction_prompt,
    build_classification_system_prompt,
    build_classification_user_prompt,
)
from taxonomy_classifier.rag.response_parser import (
    parse_attribute_response,
    parse_classification_response,
    require_decision,
)
from taxonomy_classifier.rag.vector_service import VectorService

__all__ = [
    "VectorService",
    "DecisionService",
    "build_classification_system_prompt",
    "build_classification_user_prompt",
    "build_attribute_extraction_prompt",
    "parse_classification_response",
    "parse_attribute_response",
    "require_decision",
]
