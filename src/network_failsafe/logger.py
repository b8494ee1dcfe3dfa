# --- Standard library imports ---
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

# --- Project imports ---
from .config import Config


# --- Custom log levels ---
TIMING = 25   # Between INFO (20) and WARNING (30)
logging.addLevelName(TIMING, "TIME")

def timing(self, message, *args, **kwargs):
    """Add `timing` method to Logger for TIMING-level logs (tick durations)."""
    if self.isEnabledFor(TIMING):
        self._log(TIMING, message, args, stacklevel=2, **kwargs)

logging.Logger.timing = timing

# --- Filters ---
class TimingFilter(logging.Filter):
    """Drop TIMING records unless explicitly enabled."""
    def __init__(self, enabled: bool):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        return self.enabled or record.levelno != TIMING

# --- Format configuration constants ---
LOG_LEVEL_EMOJIS = {
    logging.DEBUG: "🧱",
    logging.INFO: "🟢",
    TIMING: "⚡️",
    logging.WARNING: "⚠️ ",
    logging.ERROR: "❌",
    logging.CRITICAL: "🔥",
}

LEVEL_NAME_MAP = {
    "WARNING": "WARN",
    "CRITICAL": "FATAL",
}

CONSOLE_FORMAT = "%(asctime)s %(levelemoji)s %(name)s:%(funcName)s → %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-5s] %(name)s:%(funcName)s:%(lineno)d → %(message)s"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

# --- Formatters ---
class EmojiFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        """
        Prepend an emoji per log level and shorten level names.
        """
        record.levelemoji = LOG_LEVEL_EMOJIS.get(record.levelno, "")
        record.levelname = LEVEL_NAME_MAP.get(record.levelname, record.levelname)
        return super().format(record)

# --- Public logging setup API ---
def setup_logging(
    level=logging.INFO,
    timing_enabled: bool | None = None,
    log_file: Path | str | None = None,
) -> None:
    """
    Configure global logging: emoji console output on stdout plus an
    optional size-rotated plain-text file for unattended runs.
    """
    if timing_enabled is None:
        timing_enabled = Config.LOG_TIMING
    if log_file is None:
        log_file = Config.LOG_FILE

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(EmojiFormatter(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    console.addFilter(TimingFilter(enabled=timing_enabled))
    root.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(TimingFilter(enabled=timing_enabled))
        root.addHandler(file_handler)

def get_logger(name: str) -> logging.Logger:
    """
    Return a logger namespaced under `network_failsafe`.
    """
    return logging.getLogger(f"network_failsafe.{name}")
