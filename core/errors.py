# core/errors.py
from typing import Dict, Optional


class CardDBError(Exception):
    """
    Base class for errors that abort a single menu operation.

    `cache` holds the response cache as it stood when the operation failed,
    so responses fetched before the failure are not lost. None means the
    caller's cache is still current.
    """

    cache: Optional[Dict[str, str]] = None


class ParseError(CardDBError):
    """Persisted or fetched JSON could not be understood."""


class NetworkError(CardDBError):
    """A catalog request failed or returned a non-success status."""


class ValidationError(CardDBError):
    """Operator input could not be parsed or is out of range."""
