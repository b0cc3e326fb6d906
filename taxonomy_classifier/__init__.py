"""
Taxonomy Classifier
===================

Assigns retail products to a node of the product category hierarchy.

Features:
- Bundle detection with a depth ceiling for composite products
- Candidate retrieval from a product-type anchor and pgvector similarity search
- LLM-based final selection with a confidence estimate and review flag
- Optional attribute extraction for the assigned category

"""

__version__ = "1.0.0"
