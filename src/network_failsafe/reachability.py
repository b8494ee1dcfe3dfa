# --- Standard library imports ---
import sys
import math
import socket
from typing import Sequence

# --- Project imports ---
from .config import Config
from .logger import get_logger
from .command_runner import CommandError, CommandRunner


logger = get_logger("reachability")

# Extra time the runner allows on top of ping's own wait before killing it
PING_GRACE_S = 1.0

def is_valid_ip(ip: str) -> bool:
    """
    Validate an IPv4 or IPv6 literal using socket.

    Args:
        ip: address string to validate.

    Returns:
        True if `ip` is a literal address, False otherwise.
    """
    for family in (socket.AF_INET, socket.AF_INET6):
        try:
            socket.inet_pton(family, ip)
            return True
        except (OSError, TypeError):
            continue
    return False

def ping_command(ip: str, timeout: float, platform: str = sys.platform) -> list[str]:
    """Single ICMP echo request in the platform's ping dialect."""
    if platform == "win32":
        return ["ping", "-n", "1", "-w", str(max(1, int(timeout * 1000))), ip]
    if platform == "darwin":
        # BSD ping: -W is in milliseconds
        return ["ping", "-c", "1", "-W", str(max(1, int(timeout * 1000))), ip]
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout))), ip]


class ReachabilityProbe:
    """
    Determines internet reachability from a small ordered set of echo targets.

    Each target is tried once, in order; the first success short-circuits.
    There is no internal retry: cadence is the caller's polling interval.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        targets: Sequence[str] | None = None,
        per_target_timeout: float | None = None,
        platform: str = sys.platform,
    ):
        self.runner = runner or CommandRunner()
        self.targets = tuple(targets if targets is not None else Config.PROBE_TARGETS)
        self.per_target_timeout = (
            Config.PROBE_TIMEOUT_S if per_target_timeout is None else per_target_timeout
        )
        self.platform = platform

    async def has_internet(
        self,
        targets: Sequence[str] | None = None,
        per_target_timeout: float | None = None,
    ) -> bool:
        targets = self.targets if targets is None else tuple(targets)
        timeout = self.per_target_timeout if per_target_timeout is None else per_target_timeout

        for ip in targets:
            if not is_valid_ip(ip):
                logger.warning(f"Skipping invalid probe target: {ip!r}")
                continue

            try:
                await self.runner.run(
                    ping_command(ip, timeout, self.platform),
                    timeout=timeout + PING_GRACE_S,
                )
                logger.debug(f"Echo reply from {ip}")
                return True
            except CommandError as exc:
                # Probe failure is isolated; try the next target
                logger.debug(f"Echo probe failed for {ip} ({exc.__class__.__name__})")

        return False

    # Engine-facing shorthand
    async def __call__(self) -> bool:
        return await self.has_internet()
