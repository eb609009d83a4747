"""Index handle parameters and client exceptions.

Index parameters are fetched once from the service and never change for the
lifetime of a handle, so they are modelled as frozen dataclasses.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class IndexParams:
    """Configuration of a dense-only index as reported by ``/index/<name>/info``."""
    lib_token: str
    total_elements: int
    space_type: str
    dimension: int
    use_fp16: bool
    m: int

    @property
    def precision(self) -> str:
        return "float16" if self.use_fp16 else "float32"

    @classmethod
    def from_info(cls, info: Dict[str, Any]) -> "IndexParams":
        return cls(
            lib_token=str(info.get("lib_token", "")),
            total_elements=int(info.get("total_elements", 0)),
            space_type=str(info.get("space_type", "cosine")).lower(),
            dimension=int(info["dimension"]),
            use_fp16=bool(info.get("use_fp16", False)),
            m=int(info.get("M", 16)),
        )


@dataclass(frozen=True)
class HybridIndexParams(IndexParams):
    """Configuration of a hybrid index as reported by ``/hybrid/<name>/info``."""
    vocab_size: int = 0

    @classmethod
    def from_info(cls, info: Dict[str, Any]) -> "HybridIndexParams":
        base = IndexParams.from_info(info)
        return cls(
            lib_token=base.lib_token,
            total_elements=base.total_elements,
            space_type=base.space_type,
            dimension=base.dimension,
            use_fp16=base.use_fp16,
            m=base.m,
            vocab_size=int(info.get("vocab_size", 0)),
        )


class VectorXError(Exception):
    """Base exception for VectorX client operations."""
    pass


class VectorXValidationError(VectorXError, ValueError):
    """Input rejected before any request was sent."""
    pass


class VectorXTransportError(VectorXError):
    """The service answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        if self.status_code is None:
            return super().__str__()
        return f"{super().__str__()} (status={self.status_code}, body={self.body!r})"


class VectorXEncodeError(VectorXError):
    """A batch could be encoded neither as MessagePack nor as JSON."""
    pass
