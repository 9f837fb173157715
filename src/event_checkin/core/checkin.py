"""Check-then-mark orchestration for a single registrant identifier."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol, Set, Tuple, Union

from ..errors import CheckinError, ProtocolError
from ..models import (
    AlreadyAttended,
    AttendanceQuery,
    CheckinMethod,
    MarkFailure,
    Registrant,
    parse_attendance_status,
    parse_mark_result,
)
from ..utils.logger import LayeredAdapter, get_logger

CHECK_PATH = "/check_attendance"
MARK_PATH = "/mark_attendance"


class CheckinState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    MARKING = "marking"
    ALREADY_ATTENDED = "already_attended"
    MARKED = "marked"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {CheckinState.ALREADY_ATTENDED, CheckinState.MARKED, CheckinState.FAILED}
)


class AttendanceTransport(Protocol):
    async def post(self, path: str, payload: Any) -> Any:
        """Send a signed POST and return the decoded JSON body."""


class StatsRefresher(Protocol):
    async def refresh(self) -> Any:
        """Re-fetch aggregate statistics."""


@dataclass(frozen=True)
class CheckinOutcome:
    """Terminal result of one submission."""

    state: CheckinState
    registrant_id: str
    method: CheckinMethod
    registrant: Optional[Registrant] = None
    attended_at: Optional[str] = None
    error: Optional[CheckinError] = None
    trail: Tuple[CheckinState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state in (CheckinState.MARKED, CheckinState.ALREADY_ATTENDED)

    @property
    def reason(self) -> Optional[str]:
        return self.error.user_message if self.error else None

    @property
    def title(self) -> str:
        if self.state is CheckinState.MARKED:
            return "Check-in Successful"
        if self.state is CheckinState.ALREADY_ATTENDED:
            return "Already Checked In"
        return "Error"

    def summary_lines(self) -> List[str]:
        if self.registrant is None:
            return [self.reason or "Failed to process check-in"]
        lines = [
            f"Name: {self.registrant.name}",
            f"Reg No: {self.registrant_id}",
            f"Year: {self.registrant.year}",
            f"Department: {self.registrant.department}",
        ]
        if self.state is CheckinState.MARKED:
            lines.append(f"Time: {self.attended_at}")
        elif self.state is CheckinState.ALREADY_ATTENDED:
            lines.extend(["", f"Already checked in at {self.attended_at}"])
        else:
            lines.extend(["", self.reason or "Failed to process check-in"])
        return lines


@dataclass
class CheckinTally:
    """Running counts for the current operator session."""

    marked: int = 0
    already_attended: int = 0
    failed: int = 0
    last_added: Optional[str] = None

    def record(self, outcome: CheckinOutcome) -> None:
        if outcome.state is CheckinState.MARKED:
            self.marked += 1
            self.last_added = outcome.registrant_id
        elif outcome.state is CheckinState.ALREADY_ATTENDED:
            self.already_attended += 1
        else:
            self.failed += 1


class CheckinOrchestrator:
    """Run check-then-mark for one identifier per :meth:`submit` call.

    ``mark_attendance`` is only ever sent after ``check_attendance`` reported
    the registrant as not attended. Callers must not submit the same
    identifier again while a call is outstanding; no deduplication happens
    here.
    """

    def __init__(
        self,
        transport: AttendanceTransport,
        *,
        stats: Optional[StatsRefresher] = None,
        logger: Union[logging.Logger, LayeredAdapter, None] = None,
    ) -> None:
        self._transport = transport
        self._stats = stats
        self._logger = logger or get_logger("checkin")
        self._refreshes: Set["asyncio.Task[Any]"] = set()
        self.tally = CheckinTally()

    async def submit(
        self, raw: Optional[str], method: CheckinMethod = CheckinMethod.MANUAL
    ) -> CheckinOutcome:
        trail = [CheckinState.IDLE]
        registrant_id = (raw or "").strip()
        registrant: Optional[Registrant] = None
        try:
            query = AttendanceQuery.from_input(raw, method)
            registrant_id = query.reg_no

            trail.append(CheckinState.CHECKING)
            status = parse_attendance_status(
                await self._transport.post(CHECK_PATH, query.payload())
            )
            registrant = status.registrant
            if isinstance(status, AlreadyAttended):
                return self._finish(
                    CheckinState.ALREADY_ATTENDED,
                    query,
                    trail,
                    registrant=registrant,
                    attended_at=status.attended_at,
                )

            trail.append(CheckinState.MARKING)
            result = parse_mark_result(await self._transport.post(MARK_PATH, query.payload()))
            if isinstance(result, MarkFailure):
                raise ProtocolError(result.reason)
            # mark responses may omit registrant details; the check call is authoritative
            return self._finish(
                CheckinState.MARKED,
                query,
                trail,
                registrant=registrant,
                attended_at=result.attended_at,
            )
        except CheckinError as exc:
            trail.append(CheckinState.FAILED)
            outcome = CheckinOutcome(
                state=CheckinState.FAILED,
                registrant_id=registrant_id,
                method=method,
                registrant=registrant,
                error=exc,
                trail=tuple(trail),
            )
            self.tally.record(outcome)
            self._logger.error(
                "Check-in failed for %s (%s): %s", registrant_id or "<empty>", exc.kind, exc.user_message
            )
            return outcome

    def _finish(
        self,
        state: CheckinState,
        query: AttendanceQuery,
        trail: List[CheckinState],
        *,
        registrant: Registrant,
        attended_at: str,
    ) -> CheckinOutcome:
        trail.append(state)
        outcome = CheckinOutcome(
            state=state,
            registrant_id=query.reg_no,
            method=query.method,
            registrant=registrant,
            attended_at=attended_at,
            trail=tuple(trail),
        )
        self.tally.record(outcome)
        if state is CheckinState.MARKED:
            self._logger.info(
                "Checked in %s (%s) at %s",
                registrant.name,
                query.reg_no,
                attended_at,
                extra={"layer": "success"},
            )
            self._schedule_refresh()
        else:
            self._logger.warning("%s (%s) already checked in at %s", registrant.name, query.reg_no, attended_at)
        return outcome

    def _schedule_refresh(self) -> None:
        if self._stats is None:
            return
        task = asyncio.ensure_future(self._stats.refresh())
        self._refreshes.add(task)
        task.add_done_callback(self._refresh_done)

    def _refresh_done(self, task: "asyncio.Task[Any]") -> None:
        self._refreshes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.warning("Stats refresh after check-in failed: %s", exc)

    async def wait_for_refresh(self) -> None:
        """Wait for stats refreshes triggered by earlier check-ins."""
        if self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)
