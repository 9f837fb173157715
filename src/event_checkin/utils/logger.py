"""
Layered logging helpers for the check-in client.

Every record carries a ``layer`` (step, progress, success, warning, error,
debug, user) that decides the icon and colour printed in front of it.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import sys
from typing import Any, Dict, Optional

__all__ = [
    "logger",
    "step",
    "progress",
    "success",
    "debug_detail",
    "get_logger",
    "spinner",
    "set_log_profile",
]

BASE_LOGGER_NAME = "event_checkin"

_PALETTE: Dict[str, str] = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "blue": "\033[34m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
}

_PROFILE_LEVELS: Dict[str, int] = {
    "quiet": logging.WARNING,
    "user": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
}


def _colour_enabled() -> bool:
    return os.getenv("NO_COLOR") is None


def _apply_color(text: str, *styles: str) -> str:
    if not styles or not _colour_enabled():
        return text
    colors = "".join(_PALETTE.get(style, "") for style in styles)
    return f"{colors}{text}{_PALETTE['reset']}"


# ---------------------------------------------------------------------------
# Formatter and adapter


class LayeredFormatter(logging.Formatter):
    """Prefix each message with the icon of its layer."""

    LAYERS: Dict[str, Dict[str, Any]] = {
        "step": {"icon": "▶", "style": ("blue", "bold")},
        "progress": {"icon": "…", "style": ("cyan",)},
        "success": {"icon": "✓", "style": ("green", "bold")},
        "warning": {"icon": "!", "style": ("yellow", "bold")},
        "error": {"icon": "✗", "style": ("red", "bold")},
        "debug": {"icon": "·", "style": ("magenta",)},
        "user": {"icon": "•", "style": ()},
    }

    def format(self, record: logging.LogRecord) -> str:
        layer = getattr(record, "layer", "user")
        message = super().format(record)
        if layer == "debug":
            return f"{_apply_color('[debug]', 'dim')} {message}"
        mapping = self.LAYERS.get(layer, self.LAYERS["user"])
        return f"{_apply_color(mapping['icon'], *mapping['style'])} {message}"


class LayeredAdapter(logging.LoggerAdapter):
    """Logger adapter that fills in the ``layer`` extra."""

    def __init__(self, logger: logging.Logger, default_layer: str = "user"):
        super().__init__(logger, {"layer": default_layer})

    def log(self, level: int, msg: Any, *args, layer: Optional[str] = None, **kwargs) -> None:
        if not self.isEnabledFor(level):
            return
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("layer", layer or self.extra.get("layer", "user"))
        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "debug")
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "warning")
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "error")
        self.log(logging.ERROR, msg, *args, **kwargs)


# ---------------------------------------------------------------------------
# Configuration


def _console_level() -> int:
    level = _PROFILE_LEVELS.get((os.getenv("LOG_PROFILE") or "user").lower(), logging.INFO)
    override = os.getenv("LOG_LEVEL")
    if override:
        named = getattr(logging, override.upper(), None)
        if isinstance(named, int):
            level = named
    return level


def _configure_base_logger() -> LayeredAdapter:
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if base_logger.handlers:
        return LayeredAdapter(base_logger)

    base_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(LayeredFormatter("%(message)s"))
    base_logger.addHandler(console_handler)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            base_logger.warning("Failed to open logfile '%s': %s", log_file, exc)
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            file_handler.setLevel(logging.DEBUG)
            base_logger.addHandler(file_handler)

    return LayeredAdapter(base_logger)


logger = _configure_base_logger()


# ---------------------------------------------------------------------------
# Public helpers


def step(message: str) -> None:
    """Log a major step in the workflow."""
    logger.log(logging.INFO, message, layer="step")


def progress(message: str) -> None:
    logger.log(logging.INFO, message, layer="progress")


def success(message: str) -> None:
    logger.log(logging.INFO, message, layer="success")


def debug_detail(message: str) -> None:
    """Log detail that only shows with LOG_PROFILE=debug."""
    logger.log(logging.DEBUG, message, layer="debug")


def get_logger(name: str, *, layer: str = "user") -> LayeredAdapter:
    """Return a child of the base logger using layered formatting."""
    return LayeredAdapter(logging.getLogger(f"{BASE_LOGGER_NAME}.{name}"), default_layer=layer)


def set_log_profile(profile: Optional[str]) -> None:
    """Adjust console verbosity at runtime."""
    profile = (profile or "user").lower()
    level = _PROFILE_LEVELS.get(profile, logging.INFO)
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    for handler in base_logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)
    os.environ["LOG_PROFILE"] = profile


# ---------------------------------------------------------------------------
# Spinner


class _Spinner:
    FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

    def __init__(self, message: str, *, enabled: bool = True):
        self.message = message
        self._enabled = enabled and sys.stderr.isatty()
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False

    async def __aenter__(self) -> "_Spinner":
        if self._enabled:
            self._running = True
            self._task = asyncio.create_task(self._animate())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._running = False
        if self._task:
            await self._task
            _clear_current_line()
        return False

    async def _animate(self) -> None:
        for frame in itertools.cycle(self.FRAMES):
            if not self._running:
                break
            sys.stderr.write(f"\r{_apply_color(frame, 'cyan')} {self.message}")
            sys.stderr.flush()
            await asyncio.sleep(0.12)

    def update(self, message: str) -> None:
        self.message = message


def _clear_current_line() -> None:
    sys.stderr.write("\r" + " " * 120 + "\r")
    sys.stderr.flush()


def spinner(message: str, *, enabled: bool = True) -> _Spinner:
    """Return an async spinner context manager drawn on stderr."""
    return _Spinner(message, enabled=enabled)
