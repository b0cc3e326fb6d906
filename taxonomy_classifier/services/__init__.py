"""
Business Services
=================

Classification pipeline components.

Components:
    - ProductClassifier: Orchestrates the classification pipeline
    - ClassifierContext: Owns collaborators and their lifecycle
    - CandidateGenerator: Type anchor + similarity search candidates
    - TaxonomyIndex: In-memory category hierarchy
    - bundle_detector / confidence: Pure scoring functions
"""

from taxonomy_classifier.services.bundle_detector import detect_bundle
from taxonomy_classifier.services.candidate_generator import CandidateGenerator, merge_candidates
from taxonomy_classifier.services.classifier import ProductClassifier
from taxonomy_classifier.services.confidence import calculate_confidence, needs_review
from taxonomy_classifier.services.context import ClassifierContext
from taxonomy_classifier.services.taxonomy_index import TaxonomyIndex

__all__ = [
    # Orchestration
    "ProductClassifier",
    "ClassifierContext",
    # Components
    "CandidateGenerator",
    "TaxonomyIndex",
    "detect_bundle",
    "merge_candidates",
    "calculate_confidence",
    "needs_review",
]
