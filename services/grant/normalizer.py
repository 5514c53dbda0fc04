from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from dto.grant_dto import GrantDTO
from dto.source_record_dto import SourceRecordBase, parse_raw_record
from logging_setup import AUDIT_LOGGER_NAME
from services.errors import ValidationError

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

KEY_SEPARATOR = "::"

GRANT_TYPES = {"europeo", "statale", "regionale"}

_SHEET_DATE_RE = re.compile(r"^Date\(\s*(\d{4})\s*,\s*(\d{1,2})\s*,\s*(\d{1,2})\s*\)$")
_IT_DATE_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_LIST_SPLIT_RE = re.compile(r"[,;]")

RecordInput = Union[SourceRecordBase, Mapping[str, Any]]


# ---------------------------- Helpers ----------------------------

def _clean(s: Any) -> Optional[str]:
    if s is None:
        return None
    t = str(s).strip()
    return t or None


def normalize_key_part(s: str) -> str:
    """Lower-case, collapse internal whitespace, strip."""
    return " ".join((s or "").split()).lower()


def derive_identity_key(source: str, title: str) -> str:
    return f"{normalize_key_part(source)}{KEY_SEPARATOR}{normalize_key_part(title)}"


def parse_structured_date(value: Any) -> Optional[date]:
    """
    Accepts date/datetime objects, ISO strings, Italian DD/MM/YYYY and
    spreadsheet ``Date(y,m,d)`` literals. Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s:
        return None

    m = _SHEET_DATE_RE.match(s)
    if m:
        y, mo, d = (int(x) for x in m.groups())
        try:
            return date(y, mo, d)
        except ValueError:
            return None

    m = _IT_DATE_RE.match(s)
    if m:
        d, mo, y = (int(x) for x in m.groups())
        try:
            return date(y, mo, d)
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse to an aware UTC datetime. Naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            d = parse_structured_date(s)
            if d is None:
                return None
            dt = datetime(d.year, d.month, d.day)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_tags(value: Any) -> List[str]:
    """List or comma/semicolon separated string → trimmed, unique, ordered."""
    if value is None:
        return []
    items = _LIST_SPLIT_RE.split(value) if isinstance(value, str) else list(value)
    out, seen = [], set()
    for it in items:
        t = " ".join(str(it or "").split())
        if t and t.lower() not in seen:
            seen.add(t.lower())
            out.append(t)
    return out


def normalize_grant_type(value: Any) -> str:
    t = (_clean(value) or "").lower()
    return t if t in GRANT_TYPES else "altro"


def coerce_record(record: RecordInput, default_kind: str = "database") -> SourceRecordBase:
    if isinstance(record, SourceRecordBase):
        return record
    if not isinstance(record, Mapping):
        raise ValidationError(
            message=f"Unsupported record type: {type(record).__name__}",
        )
    try:
        return parse_raw_record(dict(record), default_kind=default_kind)
    except PydanticValidationError as exc:
        raise ValidationError(
            message="Malformed source record",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


# ----------------------------- Main -----------------------------

def normalize_record(
    record: RecordInput,
    source_name: Optional[str] = None,
    *,
    default_kind: str = "database",
) -> GrantDTO:
    """
    Canonicalize one raw record into a GrantDTO.

    The record's own ``fonte`` names the source; ``source_name`` (the tag of
    the collection it came from) is used when the record has none.
    Raises ValidationError when title/source are empty, or when both the
    deadline and the description are missing.
    """
    rec = coerce_record(record, default_kind=default_kind)

    title = _clean(rec.titolo)
    source = _clean(rec.fonte) or _clean(source_name)
    description = _clean(rec.descrizione)
    deadline_raw = rec.scadenza
    deadline_text = _clean(rec.scadenza_dettagliata)

    missing: List[str] = []
    if not title:
        missing.append("titolo")
    if not source:
        missing.append("fonte")
    if _clean(deadline_raw) is None and not deadline_text and not description:
        missing.append("scadenza|descrizione")
    if missing:
        raise ValidationError(
            message=f"Record missing required fields: {', '.join(missing)}",
            source=source,
            missing_fields=missing,
        )

    deadline = parse_structured_date(deadline_raw)
    if deadline is None and _clean(deadline_raw) is not None and not deadline_text:
        # Free text given in the structured slot: keep it for display.
        deadline_text = _clean(deadline_raw)

    persisted = _clean(rec.persisted_id())
    if persisted:
        key, key_origin = persisted, "persisted"
    else:
        key, key_origin = derive_identity_key(source, title), "derived"
        audit_logger.info(
            "Derived identity key %r (kind=%s source=%r title=%r); title-based keys may over- or under-merge",
            key, rec.kind, source, title,
        )

    ingested_at = parse_timestamp(rec.data_estrazione) or parse_timestamp(rec.created_at)

    payload: Dict[str, Any] = rec.payload()

    return GrantDTO(
        key=key,
        key_origin=key_origin,
        title=title,
        source=source,
        description=description or "",
        full_description=_clean(rec.descrizione_completa),
        grant_type=normalize_grant_type(rec.tipo),
        deadline=deadline,
        deadline_text=deadline_text,
        ingested_at=ingested_at,
        sectors=normalize_tags(rec.settori),
        regions=normalize_tags(rec.regioni),
        amount_min=rec.importo_min,
        amount_max=rec.importo_max,
        url=_clean(rec.url) or _clean(getattr(rec, "page_url", None)),
        budget_available=_clean(rec.budget_disponibile),
        requirements=_clean(rec.requisiti),
        submission_mode=_clean(rec.modalita_presentazione),
        latest_updates=_clean(rec.ultimi_aggiornamenti),
        source_kind=rec.kind,
        raw_payload=payload,
    )
