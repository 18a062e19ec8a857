"""Persisted forms of grant tables and matrix strategies."""
from __future__ import annotations

from view_matrix_auth.persistence.codec import (
    DecodeContext,
    DecodeFormat,
    DecodeWarning,
    GrantTableCodec,
    Record,
    detect_format,
    records_from_document,
    records_to_document,
)
from view_matrix_auth.persistence.store import MatrixStore, StoreFormatError

__all__ = [
    "DecodeContext",
    "DecodeFormat",
    "DecodeWarning",
    "GrantTableCodec",
    "MatrixStore",
    "Record",
    "StoreFormatError",
    "detect_format",
    "records_from_document",
    "records_to_document",
]
