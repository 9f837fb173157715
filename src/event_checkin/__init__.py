"""Event check-in client: signed check-then-mark attendance requests."""

from .config.settings import ClientConfig, load_config
from .core.checkin import CheckinOrchestrator, CheckinOutcome, CheckinState, CheckinTally
from .core.signing import sign
from .core.stats import AggregateReader, StatsBoard
from .core.transport import SignedRequest, TransportClient
from .errors import (
    CheckinError,
    ConfigurationError,
    ProtocolError,
    ServerError,
    UnreachableError,
    ValidationError,
)
from .models import AggregateStats, AttendanceQuery, CheckinMethod, RecentEntry, RecentPage
from .sources import InputSource, LineScanner, ScanGate

__version__ = "0.1.0"

__all__ = [
    "AggregateReader",
    "AggregateStats",
    "AttendanceQuery",
    "CheckinError",
    "CheckinMethod",
    "CheckinOrchestrator",
    "CheckinOutcome",
    "CheckinState",
    "CheckinTally",
    "ClientConfig",
    "ConfigurationError",
    "InputSource",
    "LineScanner",
    "ProtocolError",
    "RecentEntry",
    "RecentPage",
    "ScanGate",
    "ServerError",
    "SignedRequest",
    "StatsBoard",
    "TransportClient",
    "UnreachableError",
    "ValidationError",
    "load_config",
    "sign",
]
