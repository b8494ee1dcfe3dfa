# --- Standard library imports ---
import re
import sys
from abc import ABC, abstractmethod

# --- Project imports ---
from .logger import get_logger
from .command_runner import CommandError, CommandNonZeroExit, CommandRunner


logger = get_logger("network")

# Textual failure markers in connect output (fallback when exit code is 0)
FAILURE_MARKERS = ("error", "failed")

# Interfaces that never count as a network profile on the POSIX variant
EXCLUDED_EXACT = {"lo"}
EXCLUDED_FRAGMENTS = ("virbr", "docker")


class ConnectError(Exception):
    """The OS reported (or its output suggests) that a connect attempt failed."""

    def __init__(self, raw_output: str, returncode: int | None = None):
        self.raw_output = raw_output
        self.returncode = returncode
        summary = raw_output.strip().splitlines()[0] if raw_output.strip() else "no output"
        super().__init__(summary)


def has_failure_marker(output: str) -> bool:
    lowered = output.lower()
    return any(marker in lowered for marker in FAILURE_MARKERS)


class NetworkAdapter(ABC):
    """
    Platform network-control surface.

    Query operations degrade to an empty/negative answer on command failure;
    only `connect()` raises. Every call is bounded by the runner timeout.
    """

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @abstractmethod
    async def list_profiles(self) -> set[str]:
        ...

    @abstractmethod
    async def get_active_network(self) -> str | None:
        ...

    @abstractmethod
    async def is_profile_available(self, name: str) -> bool:
        ...

    @abstractmethod
    def connect_command(self, name: str) -> list[str]:
        ...

    async def connect(self, name: str) -> None:
        """
        Associate with profile `name`.

        A non-zero exit is the primary failure signal. Output containing
        "error"/"failed" is treated as failure even on exit 0.

        Raises:
            ConnectError: with the raw command output
        """
        try:
            out = await self.runner.run(self.connect_command(name))
        except CommandNonZeroExit as exc:
            raise ConnectError(exc.stderr or exc.stdout, exc.returncode) from exc
        except CommandError as exc:
            raise ConnectError(str(exc)) from exc

        if has_failure_marker(out):
            raise ConnectError(out, 0)

    async def _query(self, args: list[str]) -> str | None:
        """Run a read-only query; None means the query failed."""
        try:
            return await self.runner.run(args)
        except CommandError as exc:
            logger.warning(f"Network query failed: {exc}")
            return None


# ──────────────────────────────────────────────────────────────
# POSIX: NetworkManager (nmcli)
# ──────────────────────────────────────────────────────────────

def split_terse(line: str) -> list[str]:
    """
    Split one line of `nmcli -t` output into fields.

    nmcli escapes literal ':' and '\\' with a backslash in terse mode.
    """
    fields: list[str] = []
    buf: list[str] = []
    escaped = False

    for ch in line:
        if escaped:
            buf.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ":":
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)

    fields.append("".join(buf))
    return fields


def is_excluded_interface(name: str) -> bool:
    return name in EXCLUDED_EXACT or any(f in name for f in EXCLUDED_FRAGMENTS)


class NmcliAdapter(NetworkAdapter):

    async def list_profiles(self) -> set[str]:
        out = await self._query(["nmcli", "-t", "-f", "NAME", "connection", "show"])
        if out is None:
            return set()

        profiles = set()
        for line in out.splitlines():
            name = split_terse(line.strip())[0].strip()
            if name and not is_excluded_interface(name):
                profiles.add(name)
        return profiles

    async def get_active_network(self) -> str | None:
        out = await self._query(
            ["nmcli", "-t", "-f", "NAME,STATE", "connection", "show", "--active"]
        )
        if out is None:
            return None

        for line in out.splitlines():
            fields = split_terse(line.strip())
            if len(fields) < 2 or fields[-1].strip() != "activated":
                continue
            name = ":".join(fields[:-1]).strip()
            if name and not is_excluded_interface(name):
                return name
        return None

    async def is_profile_available(self, name: str) -> bool:
        out = await self._query(["nmcli", "-t", "-f", "SSID", "dev", "wifi"])
        if out is None:
            return False

        ssids_in_air = {split_terse(line.strip())[0].strip() for line in out.splitlines()}
        return name in ssids_in_air

    def connect_command(self, name: str) -> list[str]:
        return ["nmcli", "device", "wifi", "connect", name]


# ──────────────────────────────────────────────────────────────
# Windows: WLAN (netsh)
# ──────────────────────────────────────────────────────────────

ACTIVE_PROFILE_RE = re.compile(r"^[ \t]*Profile[ \t]*:[ \t]*(.+)$", re.MULTILINE)
VISIBLE_SSID_RE = re.compile(r"^[ \t]*SSID[ \t]+\d+[ \t]*:[ \t]*(.*)$", re.MULTILINE)


class NetshAdapter(NetworkAdapter):

    async def list_profiles(self) -> set[str]:
        out = await self._query(["netsh", "wlan", "show", "profiles"])
        if out is None:
            return set()

        profiles = set()
        for line in out.splitlines():
            if ":" not in line:
                continue
            name = line.split(":", 1)[1].strip()
            if name:
                profiles.add(name)
        return profiles

    async def get_active_network(self) -> str | None:
        out = await self._query(["netsh", "wlan", "show", "interfaces"])
        if out is None:
            return None

        match = ACTIVE_PROFILE_RE.search(out)
        return match.group(1).strip() if match else None

    async def is_profile_available(self, name: str) -> bool:
        out = await self._query(["netsh", "wlan", "show", "networks"])
        if out is None:
            return False

        return name in {ssid.strip() for ssid in VISIBLE_SSID_RE.findall(out)}

    def connect_command(self, name: str) -> list[str]:
        return ["netsh", "wlan", "connect", f"name={name}"]


def select_adapter(
    runner: CommandRunner | None = None,
    platform: str = sys.platform,
) -> NetworkAdapter:
    """Pick the command dialect for the host OS."""
    if platform == "win32":
        return NetshAdapter(runner)
    return NmcliAdapter(runner)
