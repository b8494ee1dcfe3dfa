# --- Standard library imports ---
import os
from pathlib import Path
from dataclasses import dataclass

# --- Third-party imports ---
from dotenv import load_dotenv


# Load .env once
load_dotenv()

class Config:
    """Centralized config for service-level operational parameters"""

    # --- Failover document location ---
    CONFIG_PATH = Path(
        os.getenv(
            "FAILSAFE_CONFIG_PATH",
            Path.home() / ".config" / "network_failsafe" / "config.json",
        )
    ).expanduser()

    # --- Command Policy ---
    try:
        COMMAND_TIMEOUT_S = float(os.getenv("COMMAND_TIMEOUT_S", 5))
    except ValueError:
        COMMAND_TIMEOUT_S = 5.0

    # --- Reachability Policy ---
    PROBE_TARGETS = tuple(
        t.strip()
        for t in os.getenv("PROBE_TARGETS", "1.1.1.1,8.8.8.8").split(",")
        if t.strip()
    )

    try:
        PROBE_TIMEOUT_S = float(os.getenv("PROBE_TIMEOUT_S", 1))
    except ValueError:
        PROBE_TIMEOUT_S = 1.0

    # --- Notification Policy ---
    NOTIFY_URL = os.getenv("NOTIFY_URL") or None
    NOTIFY_TIMEOUT_S = 5   # seconds (NOT user configurable)

    # --- Observability Policy ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_TIMING = os.getenv("LOG_TIMING", "false").lower() == "true"
    LOG_FILE = os.getenv("LOG_FILE") or None

    try:
        STATUS_LOG_INTERVAL_S = int(os.getenv("STATUS_LOG_INTERVAL_S", 60))
    except ValueError:
        STATUS_LOG_INTERVAL_S = 60


# Defaults written to a fresh failover document (camelCase on disk)
DEFAULT_DOCUMENT = {
    "priorityList": [],
    "checkInterval": 3000,
    "failThreshold": 3,
    "recoverThreshold": 2,
}

# Engine-side fallbacks for unset (None/0) values. These intentionally differ
# from DEFAULT_DOCUMENT.
FALLBACK_CHECK_INTERVAL_MS = 5000
FALLBACK_RECOVER_THRESHOLD = 5


def _optional_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


@dataclass(frozen=True)
class FailoverConfig:
    """
    Immutable snapshot of the failover document for one engine run.

    Index 0 of `priority_list` is the most preferred profile.
    """

    priority_list: tuple[str, ...] = ()
    check_interval_ms: int | None = None
    fail_threshold: int | None = None      # reserved, not consulted by the engine
    recover_threshold: int | None = None

    @classmethod
    def from_document(cls, doc: dict) -> "FailoverConfig":
        """Build a snapshot from the on-disk camelCase document."""
        raw_list = doc.get("priorityList") or []
        if isinstance(raw_list, str):
            raw_list = [raw_list]
        elif not isinstance(raw_list, list):
            raw_list = []

        # Profile names only; null or numeric entries are not profiles
        priority_list = tuple(
            name.strip() for name in raw_list if isinstance(name, str) and name.strip()
        )

        return cls(
            priority_list=priority_list,
            check_interval_ms=_optional_int(doc.get("checkInterval")),
            fail_threshold=_optional_int(doc.get("failThreshold")),
            recover_threshold=_optional_int(doc.get("recoverThreshold")),
        )

    def to_document(self) -> dict:
        return {
            "priorityList": list(self.priority_list),
            "checkInterval": self.check_interval_ms,
            "failThreshold": self.fail_threshold,
            "recoverThreshold": self.recover_threshold,
        }

    # ─── Effective values (unset → engine fallback) ───

    @property
    def effective_check_interval_ms(self) -> int:
        return self.check_interval_ms or FALLBACK_CHECK_INTERVAL_MS

    @property
    def effective_recover_threshold(self) -> int:
        return self.recover_threshold or FALLBACK_RECOVER_THRESHOLD

    def index_of(self, name: str | None) -> int:
        """Position of `name` in the priority list, or -1 if absent/None."""
        if name is None:
            return -1
        try:
            return self.priority_list.index(name)
        except ValueError:
            return -1
