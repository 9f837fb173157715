"""Command-line front end: manual entry, scanner input and statistics."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from .config.settings import ClientConfig, load_config
from .core.checkin import CheckinOrchestrator, CheckinOutcome
from .core.stats import AggregateReader, StatsBoard
from .core.transport import TransportClient
from .errors import CheckinError, ConfigurationError
from .models import CheckinMethod
from .sources import LineScanner, ScanGate
from .utils.console import CheckinConsole
from .utils.logger import logger, set_log_profile, spinner, step

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

QUIT_WORDS = {"q", "quit", "exit"}


@dataclass
class Services:
    transport: TransportClient
    reader: AggregateReader
    board: StatsBoard
    checkin: CheckinOrchestrator


@asynccontextmanager
async def open_services(config: ClientConfig, *, recent_limit: int = 10) -> AsyncIterator[Services]:
    async with TransportClient(config) as transport:
        reader = AggregateReader(transport, recent_limit=recent_limit)
        board = StatsBoard(reader)
        yield Services(
            transport=transport,
            reader=reader,
            board=board,
            checkin=CheckinOrchestrator(transport, stats=board),
        )


def _exit_code(outcome: CheckinOutcome) -> int:
    return EXIT_OK if outcome.ok else EXIT_FAILED


async def _submit_with_spinner(services: Services, raw: str, method: CheckinMethod) -> CheckinOutcome:
    async with spinner(f"Checking in {raw.strip() or '…'}"):
        return await services.checkin.submit(raw, method)


async def run_check(config: ClientConfig, console: CheckinConsole, reg_no: str) -> int:
    async with open_services(config) as services:
        outcome = await _submit_with_spinner(services, reg_no, CheckinMethod.MANUAL)
        console.outcome(outcome)
        await services.checkin.wait_for_refresh()
        if services.board.current is not None:
            console.console.print(f"Total attendees: {services.board.current.total}")
        return _exit_code(outcome)


async def run_manual(config: ClientConfig, console: CheckinConsole) -> int:
    loop = asyncio.get_running_loop()
    async with open_services(config) as services:
        await services.board.refresh()
        console.stats(services.board.current, stale=services.board.stale)
        step("Enter registration numbers (blank line to retry, 'q' to finish)")
        while True:
            try:
                raw = await loop.run_in_executor(None, input, "Registration number: ")
            except EOFError:
                break
            if raw.strip().lower() in QUIT_WORDS:
                break
            console.outcome(await _submit_with_spinner(services, raw, CheckinMethod.MANUAL))
            await services.checkin.wait_for_refresh()
            if services.board.current is not None:
                console.console.print(f"Total attendees: {services.board.current.total}")
        console.tally(services.checkin.tally)
        return EXIT_FAILED if services.checkin.tally.failed else EXIT_OK


async def run_scan(config: ClientConfig, console: CheckinConsole) -> int:
    async with open_services(config) as services:
        await services.board.refresh()
        scanner = LineScanner()
        gate = ScanGate(scanner, services.checkin, on_outcome=console.outcome)
        step("Scanner ready; one code per line, Ctrl+D to stop")
        gate.start()
        try:
            await scanner.pump(sys.stdin)
        finally:
            gate.stop()
            await gate.wait_idle()
            await services.checkin.wait_for_refresh()
        dropped = scanner.dropped + gate.dropped
        if dropped:
            logger.warning("Ignored %d scan(s) received while a check-in was in progress", dropped)
        console.tally(services.checkin.tally)
        return EXIT_FAILED if services.checkin.tally.failed else EXIT_OK


async def run_stats(config: ClientConfig, console: CheckinConsole, recent: int) -> int:
    async with open_services(config, recent_limit=recent) as services:
        async with spinner("Fetching statistics"):
            stats = await services.board.refresh()
        console.stats(stats, stale=services.board.stale)
        return EXIT_FAILED if stats is None else EXIT_OK


async def run_recent(config: ClientConfig, console: CheckinConsole, page: int, per_page: int) -> int:
    async with open_services(config) as services:
        try:
            listing = await services.reader.fetch_recent(page=page, per_page=per_page)
        except CheckinError as exc:
            logger.error("Could not load recent check-ins: %s", exc.user_message)
            return EXIT_FAILED
        console.recent(listing)
        return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-checkin",
        description="Event check-in client: check then mark attendance over signed requests",
    )
    parser.add_argument("--env-file", help="Path to the .env file (default: $ENV_FILE or .env)")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")

    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Check in a single registration number")
    check.add_argument("reg_no", help="Registration number to check in")

    commands.add_parser("manual", help="Prompt for registration numbers until 'q'")
    commands.add_parser("scan", help="Read scanned codes from stdin, one per line")

    stats = commands.add_parser("stats", help="Show attendance totals and recent check-ins")
    stats.add_argument("--recent", type=int, default=10, help="How many recent check-ins to show")

    recent = commands.add_parser("recent", help="List recently checked-in students")
    recent.add_argument("--page", type=int, default=1)
    recent.add_argument("--per-page", type=int, default=20)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        set_log_profile("debug")
    elif args.quiet:
        set_log_profile("quiet")

    try:
        config = load_config(args.env_file)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    console = CheckinConsole()
    if args.command == "check":
        runner = run_check(config, console, args.reg_no)
    elif args.command == "manual":
        runner = run_manual(config, console)
    elif args.command == "scan":
        runner = run_scan(config, console)
    elif args.command == "stats":
        runner = run_stats(config, console, args.recent)
    else:
        runner = run_recent(config, console, args.page, args.per_page)

    try:
        return asyncio.run(runner)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
