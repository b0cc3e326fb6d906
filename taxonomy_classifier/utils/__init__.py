"""
Utilities
=========

Logging, typed errors and text cleanup helpers.
"""
