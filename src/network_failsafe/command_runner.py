# --- Standard library imports ---
import os
import sys
import signal
import asyncio
import subprocess
from typing import Sequence

# --- Project imports ---
from .config import Config
from .logger import get_logger


logger = get_logger("command_runner")


class CommandError(Exception):
    """Base class for every failure surfaced by `CommandRunner.run()`."""

    def __init__(self, args: Sequence[str], message: str):
        self.command = list(args)
        super().__init__(f"{' '.join(self.command)}: {message}")


class CommandTimeout(CommandError):
    def __init__(self, args: Sequence[str], timeout: float):
        self.timeout = timeout
        super().__init__(args, f"timed out after {timeout:g}s")


class CommandNonZeroExit(CommandError):
    def __init__(self, args: Sequence[str], returncode: int, stderr: str, stdout: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(args, f"exit {returncode} ({detail})")


class CommandSpawnFailure(CommandError):
    def __init__(self, args: Sequence[str], reason: str):
        self.reason = reason
        super().__init__(args, f"could not start ({reason})")


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


# Seconds to wait for the killed process group to be reaped before giving up
KILL_GRACE_S = 2.0


def _session_kwargs(platform: str = sys.platform) -> dict:
    """Spawn each command as the leader of its own process group."""
    if platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


class CommandRunner:
    """
    Runs external OS commands with a hard upper bound on execution time.

    Commands are argv lists executed without a shell, each in its own
    process group. On timeout (or cancellation) the whole group is killed,
    so helpers the command spawned die with it and cannot hold the output
    pipes open past the deadline.
    """

    def __init__(self, default_timeout: float | None = None):
        self.default_timeout = (
            Config.COMMAND_TIMEOUT_S if default_timeout is None else default_timeout
        )

    async def run(self, args: Sequence[str], timeout: float | None = None) -> str:
        """
        Execute `args` and return captured stdout.

        Raises:
            CommandTimeout: the process exceeded `timeout` seconds (group killed)
            CommandNonZeroExit: the process exited with a non-zero code
            CommandSpawnFailure: the process could not be started
        """
        argv = [str(a) for a in args]
        if not argv:
            raise CommandSpawnFailure(argv, "empty command")

        limit = self.default_timeout if timeout is None else timeout

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **_session_kwargs(),
            )
        except OSError as exc:
            raise CommandSpawnFailure(argv, exc.strerror or type(exc).__name__) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            await self._terminate(proc)
            logger.debug(f"Command timed out after {limit:g}s: {argv[0]}")
            raise CommandTimeout(argv, limit) from None
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise

        out, err = _decode(stdout), _decode(stderr)
        if proc.returncode != 0:
            raise CommandNonZeroExit(argv, proc.returncode, err, out)

        return out

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """
        Kill the child's whole process group and wait (bounded) for the reap.

        If something in the group escaped the kill and still holds a pipe,
        the wait is abandoned after KILL_GRACE_S rather than blocking the
        caller past its deadline.
        """
        await self._kill_group(proc)
        try:
            await asyncio.wait_for(proc.wait(), timeout=KILL_GRACE_S)
        except asyncio.TimeoutError:
            logger.warning(f"Process group {proc.pid} not reaped after kill; abandoning pipes")

    @staticmethod
    async def _kill_group(proc: asyncio.subprocess.Process) -> None:
        if sys.platform == "win32":
            # taskkill /T walks the tree; the group flag alone does not kill children
            try:
                killer = await asyncio.create_subprocess_exec(
                    "taskkill", "/F", "/T", "/PID", str(proc.pid),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                await asyncio.wait_for(killer.wait(), timeout=KILL_GRACE_S)
            except (OSError, asyncio.TimeoutError) as exc:
                logger.debug(f"taskkill failed for {proc.pid} ({type(exc).__name__}); killing leader only")
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
            return

        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
