# ─── Standard library imports ───
import asyncio
from enum import Enum, auto
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional

# ─── Project imports ───
from .telemetry import TickTimer, tlog
from .logger import get_logger
from .config import FailoverConfig
from .notify import CRITICAL, LogNotifier, Notifier
from .network import NetworkAdapter, select_adapter
from .reachability import ReachabilityProbe


LogSink = Callable[[str], None]
ConfigLoader = Callable[[], FailoverConfig]
Probe = Callable[[], Awaitable[bool]]


class EngineState(Enum):
    """
    Failover engine lifecycle and activity states.

    • INIT: constructed, never started
    • RUNNING: holding the current network
    • SCANNING: offline or on an unlisted network; looking for a candidate
    • SWITCHING: a connect attempt is in progress
    • NO_CONFIG: started with an empty priority list (stable, not an error)
    • STOPPED: terminal until the next start()
    """
    INIT = auto()
    RUNNING = auto()
    SCANNING = auto()
    SWITCHING = auto()
    NO_CONFIG = auto()
    STOPPED = auto()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class EngineStatus:
    """Immutable point-in-time view of the engine."""

    state: EngineState = EngineState.INIT
    online: bool | None = None
    network: str | None = None
    index: int = -1    # -1 → active network unknown or not in the priority list

    def summary(self) -> str:
        """One-line operator summary."""
        online = "CONNECTED ✅" if self.online else "OFFLINE ❌"
        network = self.network or "None"
        priority = f"#{self.index + 1}" if self.index != -1 else "Unauthorized"
        return f"FailSafe: {online} | Net: {network} | Priority: {priority} | State: {self.state}"


class FailoverEngine:
    """
    Keeps the host on the best reachable authorized network.

    Responsibilities:
    • Periodically evaluate reachability and the active network (tick)
    • SCAN for any listed candidate when offline or unauthorized
    • RECOVER to a higher-priority candidate after a stable run
    • HOLD when online on the top-priority network

    Invariants:
    • Ticks never overlap; an overlapping tick is dropped, not queued
    • Only switch attempts/results and one latched stranded alert notify
    • Work started before the last start()/stop() never mutates state
    """

    def __init__(
        self,
        config_loader: ConfigLoader,
        adapter: NetworkAdapter | None = None,
        probe: Probe | None = None,
        notifier: Notifier | None = None,
    ):
        # ─── Dependencies ───
        self.config_loader = config_loader
        self.adapter = adapter or select_adapter()
        self.probe = probe or ReachabilityProbe(self.adapter.runner)
        self.notifier = notifier or LogNotifier()
        self.logger = get_logger("engine")

        # ─── Runtime State ───
        self.config = FailoverConfig()
        self._status = EngineStatus()
        self._fail_count = 0       # latches the stranded alert
        self._success_count = 0    # consecutive stable-online ticks off the top network
        self._log_sink: Optional[LogSink] = None

        # ─── Scheduling ───
        self._timer_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()
        self._generation = 0
        self._in_flight = False
        self._switching = False

    # ──────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────

    @property
    def fail_count(self) -> int:
        return self._fail_count

    @property
    def success_count(self) -> int:
        return self._success_count

    def get_status(self) -> EngineStatus:
        return replace(self._status)

    def load_config(self) -> FailoverConfig:
        """
        Read a fresh config snapshot and seed counters for a new run.

        `success_count` starts at the recover threshold so the first tick
        is immediately eligible for an upgrade attempt.
        """
        try:
            config = self.config_loader()
        except Exception:
            self.logger.exception("Config loader failed; continuing with empty config")
            config = FailoverConfig()

        self.config = config
        self._success_count = config.effective_recover_threshold
        self._fail_count = 0

        tlog(
            self.logger,
            "🗂️ ",
            "CONFIG",
            "LOADED",
            primary=f"{len(config.priority_list)} profiles",
            meta=(
                f"interval={config.effective_check_interval_ms}ms | "
                f"recover_threshold={config.effective_recover_threshold} | "
                f"fail_threshold={config.fail_threshold} (reserved)"
            ),
        )
        return config

    def start(self, log_sink: LogSink | None = None) -> asyncio.Task | None:
        """
        Start (or restart) the engine. Must be called from a running event loop.

        Returns:
            The task running the immediate first tick, or None under NO_CONFIG.
        """
        self._cancel_timer()
        self._log_sink = log_sink
        self._generation += 1
        self._in_flight = False
        self._switching = False

        config = self.load_config()

        if not config.priority_list:
            self._update(state=EngineState.NO_CONFIG)
            self._emit("Engine started but no priority list is configured.")
            return None

        self._update(state=EngineState.RUNNING)
        self._emit("Engine started.")

        first_tick = self._spawn_tick()

        interval_s = config.effective_check_interval_ms / 1000
        self._timer_task = asyncio.get_running_loop().create_task(
            self._run_timer(interval_s, self._generation)
        )
        return first_tick

    def stop(self) -> None:
        """Cancel the timer and enter STOPPED. Safe to call at any time."""
        self._cancel_timer()
        self._generation += 1
        self._update(state=EngineState.STOPPED)
        self._emit("Engine stopped.")

    def restart(self, log_sink: LogSink | None = None) -> asyncio.Task | None:
        """stop() + start(); re-reads config. Keeps the current sink if none is given."""
        sink = log_sink if log_sink is not None else self._log_sink
        self.stop()
        return self.start(sink)

    async def tick(self) -> None:
        """
        Run one evaluation cycle.

        No-op when unconfigured or stopped, when a previous tick is still in
        flight, or while a switch is in progress. Never raises.
        """
        config = self.config
        if not config.priority_list or self._in_flight or self._switching:
            return
        if self._status.state is EngineState.STOPPED:
            return

        generation = self._generation
        self._in_flight = True
        timer = TickTimer(self.logger)

        try:
            await self._evaluate(config, generation, timer)

        except Exception as e:
            if self._is_current(generation):
                self.logger.exception("Unhandled exception during tick")
                self._update(state=EngineState.RUNNING)
                self._emit(f"Tick failed ({type(e).__name__}: {e})", generation)

        finally:
            if self._is_current(generation):
                self._in_flight = False
                timer.finish()

    # ──────────────────────────────────────────────────────────────
    # Decision logic
    # ──────────────────────────────────────────────────────────────

    async def _evaluate(self, config: FailoverConfig, generation: int, timer: TickTimer) -> None:
        online = await self._probe_online()
        if not self._is_current(generation):
            return
        timer.lap("reachability probe")

        active = await self.adapter.get_active_network()
        if not self._is_current(generation):
            return
        timer.lap("active network query")

        actual_index = config.index_of(active)
        self._update(online=online, network=active, index=actual_index)

        if not online or actual_index == -1:
            await self._scan(config, generation, online, actual_index)
        elif actual_index > 0:
            await self._recover(config, generation, actual_index)
        else:
            self._update(state=EngineState.RUNNING)
            self._fail_count = 0
            # success_count is kept: stability credit survives a later drop

    async def _scan(
        self,
        config: FailoverConfig,
        generation: int,
        online: bool,
        actual_index: int,
    ) -> None:
        """Offline or on an unlisted network: take the first connectable candidate."""
        self._update(state=EngineState.SCANNING)
        self._emit(
            f"Issue detected (Online: {online}, Index: {actual_index}). Scanning...",
            generation,
        )

        for i, target in enumerate(config.priority_list):
            if i == actual_index:
                self._emit(f"Skipping {target} (already connected but no internet).", generation)
                continue

            available = await self.adapter.is_profile_available(target)
            if not self._is_current(generation):
                return

            if available:
                connected = await self._try_connect(config, i, generation)
                if not self._is_current(generation):
                    return
                if connected:
                    self._fail_count = 0
                    self._success_count = 0
                    return

        if not online and self._fail_count == 0:
            self._notify(
                "Connection Lost",
                "No authorized backup networks found in range.",
                CRITICAL,
                generation=generation,
            )
            self._fail_count = 1

    async def _recover(self, config: FailoverConfig, generation: int, actual_index: int) -> None:
        """Online on a lower-priority network: upgrade after a stable run."""
        self._update(state=EngineState.RUNNING)
        self._success_count += 1

        if self._success_count < config.effective_recover_threshold:
            return

        self._emit("Checking if higher priority networks are back in range...", generation)

        for i in range(actual_index):
            available = await self.adapter.is_profile_available(config.priority_list[i])
            if not self._is_current(generation):
                return

            if available:
                connected = await self._try_connect(config, i, generation)
                if not self._is_current(generation):
                    return
                if connected:
                    self._success_count = 0
                    return

        # Nothing better in range; require a fresh stability run
        self._success_count = 0

    async def _try_connect(self, config: FailoverConfig, index: int, generation: int) -> bool:
        """
        Attempt a switch to the profile at `index`.

        Returns:
            True on a confirmed connect; False on any failure (never raises).
        """
        name = config.priority_list[index] if 0 <= index < len(config.priority_list) else None
        if not name or self._switching:
            return False

        self._switching = True
        self._update(state=EngineState.SWITCHING)

        try:
            self._notify("Network Switch", f"Attempting to connect to: {name}", generation=generation)
            tlog(self.logger, "🔀", "SWITCH", "ATTEMPT", primary=name, meta=f"priority=#{index + 1}")

            await self.adapter.connect(name)
            if not self._is_current(generation):
                return False

            self._update(network=name, index=index)
            tlog(self.logger, "🟢", "SWITCH", "CONNECTED", primary=name)
            self._notify("Connected", f"Successfully switched to {name}", generation=generation)
            return True

        except Exception as e:
            if self._is_current(generation):
                tlog(
                    self.logger,
                    "🔴",
                    "SWITCH",
                    "FAILED",
                    primary=name,
                    meta=f"{type(e).__name__}: {e}",
                )
                self._emit(f"Connection Error: {e}", generation)
            return False

        finally:
            if self._is_current(generation):
                self._switching = False
                self._update(state=EngineState.RUNNING)

    async def _probe_online(self) -> bool:
        try:
            return bool(await self.probe())
        except Exception as e:
            self.logger.warning(f"Reachability probe error ({type(e).__name__}); treating as offline")
            return False

    # ──────────────────────────────────────────────────────────────
    # Scheduling
    # ──────────────────────────────────────────────────────────────

    async def _run_timer(self, interval_s: float, generation: int) -> None:
        """Fire a tick every interval regardless of how long ticks take."""
        while self._is_current(generation):
            await asyncio.sleep(interval_s)
            if not self._is_current(generation):
                break
            self._spawn_tick()

    def _spawn_tick(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)
        return task

    def _cancel_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ──────────────────────────────────────────────────────────────
    # State + event helpers
    # ──────────────────────────────────────────────────────────────

    def _update(self, **changes) -> None:
        self._status = replace(self._status, **changes)

    def _emit(self, message: str, generation: int | None = None) -> None:
        """Log an engine event and forward it to the log sink."""
        if generation is not None and not self._is_current(generation):
            return

        self.logger.info(f"🛜 {message}")
        if self._log_sink is None:
            return
        try:
            self._log_sink(message)
        except Exception:
            self.logger.exception("Log sink raised; event dropped")

    def _notify(
        self,
        title: str,
        body: str,
        severity: str | None = None,
        generation: int | None = None,
    ) -> None:
        """Fire-and-forget user notification."""
        if generation is not None and not self._is_current(generation):
            return
        try:
            self.notifier(title, body, severity)
        except Exception:
            self.logger.exception(f"Notifier raised; dropped '{title}'")
