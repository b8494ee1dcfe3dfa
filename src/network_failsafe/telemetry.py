# --- Standard library imports ---
import time
import logging


def tlog(
    logger: logging.Logger,
    emoji: str,
    subsystem: str,
    state: str,
    primary: str = "—--",
    meta: str | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Emit one aligned telemetry line for an engine event.

    Format:
        SUBSYSTEM STATE PRIMARY | meta data

    e.g. "🔀 SWITCH     ATTEMPT      Home             | priority=#1"
    """
    line = f"{subsystem:<10} {state:<12} {primary:<16}"
    if meta:
        line += f" | {meta}"

    logger.log(level, f"{emoji} {line}", stacklevel=2)


# ============================================================
# Tick Timing (TIMING level, off unless LOG_TIMING=true)
# ============================================================

class TickTimer:
    """
    Lap timer for one evaluation cycle.

    Each tick owns its own instance, so a stale tick finishing late never
    skews the timings of the current one.
    """

    def __init__(self, logger: logging.Logger, label: str = "tick()"):
        self.logger = logger
        self.label = label
        self.started = time.perf_counter()
        self.lap_started = self.started
        self.laps: list[tuple[str, float]] = []

    def lap(self, step: str) -> float:
        """Record the time since the previous lap; returns it in ms."""
        now = time.perf_counter()
        delta_ms = (now - self.lap_started) * 1000
        self.lap_started = now
        self.laps.append((step, delta_ms))
        self.logger.timing(f"Timing | {step:<28} [{delta_ms:8.1f} ms]")
        return delta_ms

    def finish(self) -> float:
        """Log and return the end-to-end duration in ms."""
        total_ms = (time.perf_counter() - self.started) * 1000
        self.logger.timing(f"Timing | {self.label:<28} [{total_ms:8.1f} ms]")
        return total_ms
