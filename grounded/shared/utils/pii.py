"""Privacy helpers for logging.

Reflection text and contact details never appear in application logs.
Log records carry a fingerprint of the text instead.
"""
import hashlib


def hash_text_for_audit(text: str) -> str:
    """Hash reflection text for log correlation without exposing content.

    Args:
        text: Raw reflection or report text

    Returns:
        SHA-256 hex digest of the text
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()

