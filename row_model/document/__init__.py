"""Document layer - path-addressable entities."""

from __future__ import annotations

from row_model.document.document import Document
from row_model.document.model import Model

__all__ = [
    "Document",
    "Model",
]
