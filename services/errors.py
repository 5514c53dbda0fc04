from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class EngineError(Exception):
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class ValidationError(EngineError):
    """A raw source record cannot be turned into a Grant."""
    source: Optional[str] = None
    missing_fields: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["source"] = self.source
        out["missing_fields"] = self.missing_fields
        return out


@dataclass
class SectorLookupError(EngineError, LookupError):
    """Sector name has no Classification Table entry."""
    sector: Optional[str] = None


@dataclass
class StoreError(EngineError):
    """External store unreachable or rejected a read/write."""
    operation: Optional[str] = None


@dataclass
class StaleReadError(EngineError):
    expected_generation: Optional[int] = None
    actual_generation: Optional[int] = None


@dataclass
class RunCancelledError(EngineError):
    phase: Optional[str] = None
