"""Value objects exchanged between the transport, orchestrator and readers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from .errors import ProtocolError, ValidationError

DEFAULT_NAME = "Student"
NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"
PRIOR_CHECKIN_FALLBACK = "earlier"
JUST_NOW = "Just now"


class CheckinMethod(str, Enum):
    MANUAL = "Manual"
    SCANNED = "Scanned"


@dataclass(frozen=True)
class AttendanceQuery:
    """Normalized registrant identifier ready to be sent to the backend."""

    reg_no: str
    method: CheckinMethod = CheckinMethod.MANUAL

    @classmethod
    def from_input(cls, raw: Optional[str], method: CheckinMethod = CheckinMethod.MANUAL) -> "AttendanceQuery":
        """Trim ``raw``; registration numbers typed by hand are upper-cased.

        Scanned codes are sent as decoded apart from surrounding whitespace.
        """
        value = (raw or "").strip()
        if not value:
            raise ValidationError("Please enter a registration number")
        if method is CheckinMethod.MANUAL:
            value = value.upper()
        return cls(reg_no=value, method=method)

    def payload(self) -> dict:
        return {"reg_no": self.reg_no}


@dataclass(frozen=True)
class Registrant:
    name: str = DEFAULT_NAME
    year: str = NOT_AVAILABLE
    department: str = NOT_AVAILABLE


@dataclass(frozen=True)
class AlreadyAttended:
    registrant: Registrant
    attended_at: str


@dataclass(frozen=True)
class NotAttended:
    registrant: Registrant


AttendanceStatus = Union[AlreadyAttended, NotAttended]


@dataclass(frozen=True)
class MarkSuccess:
    attended_at: str


@dataclass(frozen=True)
class MarkFailure:
    reason: str


MarkResult = Union[MarkSuccess, MarkFailure]


@dataclass(frozen=True)
class RecentEntry:
    id: str
    name: str
    registrant_id: str
    method: str
    timestamp: str


@dataclass(frozen=True)
class YearSummary:
    year: str
    attended: int


@dataclass(frozen=True)
class AggregateStats:
    """Totals plus most recent check-ins; rebuilt on every fetch."""

    total: int = 0
    scanned_count: int = 0
    manual_count: int = 0
    recent_entries: Tuple[RecentEntry, ...] = ()
    by_year: Tuple[YearSummary, ...] = ()


@dataclass(frozen=True)
class RecentPage:
    page: int = 1
    per_page: int = 0
    total: int = 0
    total_pages: int = 0
    entries: Tuple[RecentEntry, ...] = ()


# ---------------------------------------------------------------------------
# Response parsing


def _require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ProtocolError(f"Malformed {what} response: expected a JSON object")
    return payload


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _registrant(data: Mapping[str, Any]) -> Registrant:
    return Registrant(
        name=_text(data.get("name"), DEFAULT_NAME),
        year=_text(data.get("year"), NOT_AVAILABLE),
        department=_text(data.get("department"), NOT_AVAILABLE),
    )


def parse_attendance_status(payload: Any) -> AttendanceStatus:
    """Map a ``/check_attendance`` body onto its status variant."""
    data = _require_mapping(payload, "check_attendance")
    status = _text(data.get("status"), "").lower()
    if status == "attended":
        return AlreadyAttended(
            registrant=_registrant(data),
            attended_at=_text(data.get("attended_at"), PRIOR_CHECKIN_FALLBACK),
        )
    if status == "not attended":
        return NotAttended(registrant=_registrant(data))
    raise ProtocolError(f"Unexpected attendance status: {data.get('status')!r}")


def parse_mark_result(payload: Any) -> MarkResult:
    data = _require_mapping(payload, "mark_attendance")
    status = _text(data.get("status"), "").lower()
    if status == "success":
        return MarkSuccess(attended_at=_text(data.get("attended_at"), JUST_NOW))
    reason = data.get("message") or data.get("detail")
    if not reason:
        reason = f"Unexpected mark status: {data.get('status')!r}"
    return MarkFailure(reason=str(reason))


def parse_recent_entry(data: Any, index: int, default_method: str = UNKNOWN) -> RecentEntry:
    if not isinstance(data, Mapping):
        data = {}
    registrant_id = _text(
        data.get("reg_no") or data.get("registrant_id") or data.get("idNumber"), NOT_AVAILABLE
    )
    return RecentEntry(
        id=_text(data.get("id"), str(index + 1)),
        name=_text(data.get("name"), UNKNOWN),
        registrant_id=registrant_id,
        method=_text(data.get("method") or data.get("type"), default_method),
        timestamp=_text(
            data.get("timestamp") or data.get("attended_at") or data.get("time"), NOT_AVAILABLE
        ),
    )


def _entries(items: Any) -> Tuple[RecentEntry, ...]:
    if not isinstance(items, list):
        return ()
    return tuple(parse_recent_entry(item, index) for index, item in enumerate(items))


def parse_stats(payload: Any) -> AggregateStats:
    """Accept either ``{summary: [...]}`` or the flat totals shape."""
    data = _require_mapping(payload, "stats")
    summary = data.get("summary")
    if isinstance(summary, list):
        by_year = tuple(
            YearSummary(year=_text(item.get("year"), UNKNOWN), attended=_count(item.get("attended")))
            for item in summary
            if isinstance(item, Mapping)
        )
        return AggregateStats(
            total=sum(entry.attended for entry in by_year),
            scanned_count=_count(data.get("scanned")),
            manual_count=_count(data.get("manual")),
            recent_entries=_entries(data.get("recent_checkins")),
            by_year=by_year,
        )

    scanned = _count(data.get("scanned"))
    manual = _count(data.get("manual"))
    total = _count(data["total"]) if "total" in data else scanned + manual
    return AggregateStats(
        total=total,
        scanned_count=scanned,
        manual_count=manual,
        recent_entries=_entries(data.get("recent_checkins")),
    )


def parse_recent_page(payload: Any) -> RecentPage:
    data = _require_mapping(payload, "recent_students")
    entries = _entries(data.get("students"))
    return RecentPage(
        page=_count(data.get("page")) or 1,
        per_page=_count(data.get("per_page")) or len(entries),
        total=_count(data.get("total")),
        total_pages=_count(data.get("total_pages")),
        entries=entries,
    )
