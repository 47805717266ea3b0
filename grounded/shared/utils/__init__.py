"""Shared utilities for the Grounded pipeline."""
from .pii import hash_text_for_audit

__all__ = ["hash_text_for_audit"]
