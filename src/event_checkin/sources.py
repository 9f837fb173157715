"""Input sources for registrant identifiers and the gate that pauses them."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol, TextIO

from .core.checkin import CheckinOrchestrator, CheckinOutcome
from .models import CheckinMethod
from .utils.logger import get_logger

DecodeCallback = Callable[[str], Any]

LOGGER = get_logger("sources")


class InputSource(Protocol):
    """Something that produces decoded identifiers while started."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def on_decode(self, callback: DecodeCallback) -> None:
        ...


class LineScanner:
    """Scanner fed one decoded code per line, e.g. a keyboard-wedge barcode reader.

    Codes that arrive while stopped are discarded, not buffered.
    """

    def __init__(self) -> None:
        self.active = False
        self.dropped = 0
        self._callback: Optional[DecodeCallback] = None

    def start(self) -> None:
        self.active = True

    def stop(self) -> None:
        self.active = False

    def on_decode(self, callback: DecodeCallback) -> None:
        self._callback = callback

    def feed(self, data: str) -> bool:
        data = data.strip()
        if not data:
            return False
        if not self.active or self._callback is None:
            self.dropped += 1
            LOGGER.debug("Scanner paused; dropped %s", data)
            return False
        self._callback(data)
        return True

    async def pump(self, stream: TextIO) -> None:
        """Feed lines from ``stream`` until EOF."""
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            self.feed(line)
            await asyncio.sleep(0)


class ScanGate:
    """Run one check-in per decode and keep the source stopped meanwhile."""

    def __init__(
        self,
        source: InputSource,
        checkin: CheckinOrchestrator,
        *,
        on_outcome: Optional[Callable[[CheckinOutcome], Any]] = None,
    ) -> None:
        self._source = source
        self._checkin = checkin
        self._on_outcome = on_outcome
        self._pending: Optional["asyncio.Future[CheckinOutcome]"] = None
        self._running = False
        self.dropped = 0
        source.on_decode(self._handle_decode)

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def start(self) -> None:
        self._running = True
        if not self.busy:
            self._source.start()

    def stop(self) -> None:
        self._running = False
        self._source.stop()

    def _handle_decode(self, data: str) -> None:
        if self._pending is not None:
            self.dropped += 1
            LOGGER.debug("Check-in in progress; ignoring scan %s", data)
            return
        self._source.stop()
        self._pending = asyncio.ensure_future(self._process(data))

    async def _process(self, data: str) -> CheckinOutcome:
        try:
            outcome = await self._checkin.submit(data, CheckinMethod.SCANNED)
            if self._on_outcome is not None:
                try:
                    self._on_outcome(outcome)
                except Exception as exc:
                    LOGGER.error("Outcome handler failed for %s: %s", outcome.registrant_id, exc)
            return outcome
        finally:
            self._pending = None
            if self._running:
                self._source.start()

    async def wait_idle(self) -> Optional[CheckinOutcome]:
        """Wait for the outstanding check-in, if any, and return its outcome."""
        if self._pending is None:
            return None
        return await self._pending
