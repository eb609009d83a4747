"""Python client for the VectorX hybrid (dense + sparse) vector service.

Subpackages:
- ``vectorx.common``: configuration, logging, and metrics.
- ``vectorx.hybrid``: codec, wire serialization, rank fusion, and the
  ``HybridIndex`` handle.

Usage:
- ``client = VectorX(token)`` then ``client.get_hybrid_index(name)``.
"""

from .client import VectorX
from .index import Index
from .hybrid.index import HybridIndex
from .hybrid.base import (
    VectorXError,
    VectorXValidationError,
    VectorXTransportError,
    VectorXEncodeError,
)

__all__ = [
    "VectorX",
    "Index",
    "HybridIndex",
    "VectorXError",
    "VectorXValidationError",
    "VectorXTransportError",
    "VectorXEncodeError",
]
