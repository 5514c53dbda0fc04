from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from services.errors import SectorLookupError, StoreError

logger = logging.getLogger(__name__)

# ATECO-style code: "62", "62.01", "62.01.00"
CODE_RE = re.compile(r"^\d{2}(?:\.\d{1,2}){0,2}$")


class ClassificationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)
    codice: str
    descrizione: str = ""


_TABLE_ADAPTER = TypeAdapter(Dict[str, List[ClassificationEntry]])


def looks_like_code(tag: str) -> bool:
    return bool(CODE_RE.match((tag or "").strip()))


class ClassificationTable:
    """
    Sector name → classification codes. Immutable once built; lookups are
    case-insensitive on the sector name.
    """

    def __init__(self, mapping: Mapping[str, Iterable[ClassificationEntry]]):
        by_key: Dict[str, Tuple[str, Tuple[ClassificationEntry, ...]]] = {}
        for name, entries in mapping.items():
            k = " ".join(name.split()).lower()
            by_key[k] = (name, tuple(entries))
        self._by_key = MappingProxyType(by_key)

    # =============== Constructors ===============
    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> "ClassificationTable":
        try:
            return cls(_TABLE_ADAPTER.validate_python(dict(raw)))
        except PydanticValidationError as exc:
            raise StoreError(
                message="Invalid classification table",
                operation="classification_load",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

    @classmethod
    def load(cls, path: Path) -> "ClassificationTable":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(
                message=f"Cannot load classification table from {path}: {exc}",
                operation="classification_load",
            ) from exc
        table = cls.from_mapping(raw)
        logger.info("Loaded classification table (%d sectors) from %s", len(table), path)
        return table

    # =============== Read Actions ===============
    def __len__(self) -> int:
        return len(self._by_key)

    def entries_for(self, sector: str) -> Tuple[ClassificationEntry, ...]:
        k = " ".join((sector or "").split()).lower()
        hit = self._by_key.get(k)
        if hit is None:
            raise SectorLookupError(message=f"Unknown sector {sector!r}", sector=sector)
        return hit[1]

    def codes_for(self, sector: str) -> FrozenSet[str]:
        return frozenset(e.codice for e in self.entries_for(sector))

    def resolve(self, sectors: Iterable[str]) -> FrozenSet[str]:
        """Union of codes for all known sectors; unknown names contribute nothing."""
        codes = set()
        for s in sectors:
            try:
                codes |= self.codes_for(s)
            except SectorLookupError:
                logger.debug("Sector %r not in classification table", s)
        return frozenset(codes)

    def describe(self, code: str) -> Optional[str]:
        for _, entries in self._by_key.values():
            for e in entries:
                if e.codice == code:
                    return e.descrizione
        return None


_default_table: Optional[ClassificationTable] = None
_default_lock = threading.Lock()


def get_classification_table(path: Optional[Path] = None) -> ClassificationTable:
    """Process-wide table, loaded on first use and read-only afterwards."""
    global _default_table
    with _default_lock:
        if _default_table is None:
            if path is None:
                from config import settings
                path = settings.classification_table_path
            _default_table = ClassificationTable.load(path)
    return _default_table
