import pytest

from event_checkin.errors import ProtocolError, ValidationError
from event_checkin.models import (
    AlreadyAttended,
    AttendanceQuery,
    CheckinMethod,
    MarkFailure,
    MarkSuccess,
    NotAttended,
    parse_attendance_status,
    parse_mark_result,
    parse_recent_page,
    parse_stats,
)


def test_manual_query_is_trimmed_and_upper_cased():
    query = AttendanceQuery.from_input("  23ecs015\t")
    assert query == AttendanceQuery(reg_no="23ECS015", method=CheckinMethod.MANUAL)
    assert query.payload() == {"reg_no": "23ECS015"}


def test_scanned_query_keeps_case():
    assert AttendanceQuery.from_input(" abC ", CheckinMethod.SCANNED).reg_no == "abC"


def test_blank_query_raises_validation_error():
    with pytest.raises(ValidationError):
        AttendanceQuery.from_input("  ")


def test_status_parsing_is_case_insensitive_and_defaults_details():
    status = parse_attendance_status({"status": "Not Attended", "name": ""})
    assert isinstance(status, NotAttended)
    assert (status.registrant.name, status.registrant.year, status.registrant.department) == (
        "Student",
        "N/A",
        "N/A",
    )

    attended = parse_attendance_status({"status": "attended", "name": "Lisa", "attended_at": "09:00"})
    assert isinstance(attended, AlreadyAttended)
    assert attended.attended_at == "09:00"


def test_status_without_status_field_is_protocol_error():
    with pytest.raises(ProtocolError):
        parse_attendance_status({"name": "Lisa"})


def test_mark_result_variants():
    assert parse_mark_result({"status": "success", "attended_at": "10:01"}) == MarkSuccess("10:01")
    assert parse_mark_result({"status": "failed", "detail": "closed"}) == MarkFailure("closed")
    assert parse_mark_result({}) == MarkFailure("Unexpected mark status: None")


def test_recent_page_defaults_when_metadata_missing():
    page = parse_recent_page({"students": [{"reg_no": "A1"}, "junk"]})

    assert (page.page, page.per_page, page.total, page.total_pages) == (1, 2, 0, 0)
    assert page.entries[1].name == "Unknown"


def test_non_finite_counts_default_to_zero():
    stats = parse_stats({"total": float("inf"), "scanned": float("-inf"), "manual": float("nan")})
    assert (stats.total, stats.scanned_count, stats.manual_count) == (0, 0, 0)

    page = parse_recent_page({"page": float("inf"), "total": float("inf"), "students": []})
    assert (page.page, page.total) == (1, 0)
