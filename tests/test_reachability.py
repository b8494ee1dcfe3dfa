import pytest
from unittest.mock import AsyncMock

from network_failsafe.command_runner import CommandNonZeroExit, CommandTimeout
from network_failsafe.reachability import ReachabilityProbe, is_valid_ip, ping_command


def failure(ip: str):
    return CommandNonZeroExit(["ping", ip], 1, "Request timed out.")


# ===============================
# TEST GROUP: Address Validation
# ===============================
@pytest.mark.parametrize(
    "ip, expected_result",
    [
        # ✅ Valid literals
        ("8.8.8.8", True),
        ("2606:4700:4700::1111", True),

        # ❌ Invalid: hostnames, fragments, shell metacharacters
        ("one.one.one.one", False),
        ("7.7.7", False),
        ("", False),
        ("1.1.1.1; rm -rf /", False),
    ],
)

def test_is_valid_ip(ip, expected_result):
    assert is_valid_ip(ip) is expected_result


@pytest.mark.parametrize(
    "platform, timeout, expected",
    [
        ("linux", 1.0, ["ping", "-c", "1", "-W", "1", "1.1.1.1"]),
        ("linux", 1.5, ["ping", "-c", "1", "-W", "2", "1.1.1.1"]),
        ("win32", 1.0, ["ping", "-n", "1", "-w", "1000", "1.1.1.1"]),
        ("darwin", 1.0, ["ping", "-c", "1", "-W", "1000", "1.1.1.1"]),
        ("darwin", 0.25, ["ping", "-c", "1", "-W", "250", "1.1.1.1"]),
    ],
)

def test_ping_command_dialects(platform, timeout, expected):
    assert ping_command("1.1.1.1", timeout, platform) == expected


# ==================================
# TEST GROUP: Internet Reachability
# ==================================
# Method: ReachabilityProbe.has_internet()
# ----------------------------------------
@pytest.mark.asyncio
async def test_first_target_success_short_circuits():
    runner = AsyncMock()
    runner.run.return_value = "1 packets transmitted, 1 received"
    probe = ReachabilityProbe(runner, targets=("1.1.1.1", "8.8.8.8"), platform="linux")

    assert await probe.has_internet() is True
    assert runner.run.await_count == 1


@pytest.mark.asyncio
async def test_failing_target_does_not_abort_remaining():
    """One failed probe is isolated; the next target is still tried"""
    runner = AsyncMock()
    runner.run.side_effect = [failure("1.1.1.1"), "reply"]
    probe = ReachabilityProbe(runner, targets=("1.1.1.1", "8.8.8.8"), platform="linux")

    assert await probe.has_internet() is True
    assert [c.args[0][-1] for c in runner.run.await_args_list] == ["1.1.1.1", "8.8.8.8"]


@pytest.mark.asyncio
async def test_all_targets_fail():
    runner = AsyncMock()
    runner.run.side_effect = [failure("1.1.1.1"), CommandTimeout(["ping"], 2.0)]
    probe = ReachabilityProbe(runner, targets=("1.1.1.1", "8.8.8.8"), platform="linux")

    assert await probe.has_internet() is False
    assert runner.run.await_count == 2


@pytest.mark.asyncio
async def test_invalid_targets_are_never_executed():
    runner = AsyncMock()
    runner.run.return_value = "reply"
    probe = ReachabilityProbe(runner, targets=("$(reboot)", "8.8.8.8"), platform="linux")

    assert await probe.has_internet() is True
    runner.run.assert_awaited_once()
    assert runner.run.await_args.args[0][-1] == "8.8.8.8"


@pytest.mark.asyncio
async def test_per_call_overrides_and_runner_timeout():
    runner = AsyncMock()
    runner.run.return_value = "reply"
    probe = ReachabilityProbe(runner, targets=("1.1.1.1",), platform="win32")

    assert await probe.has_internet(targets=["9.9.9.9"], per_target_timeout=2.0) is True

    args, kwargs = runner.run.await_args
    assert args[0] == ["ping", "-n", "1", "-w", "2000", "9.9.9.9"]
    assert kwargs["timeout"] > 2.0


@pytest.mark.asyncio
async def test_probe_is_callable():
    runner = AsyncMock()
    runner.run.side_effect = failure("1.1.1.1")
    probe = ReachabilityProbe(runner, targets=("1.1.1.1",), platform="linux")

    assert await probe() is False
