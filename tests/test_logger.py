import pytest
import logging
from network_failsafe.logger import TIMING, setup_logging, get_logger

@pytest.mark.parametrize(
    "level, message",
    [
        (logging.DEBUG, "Scanning the airwaves"),
        (logging.INFO, "Holding priority #1"),
        (logging.WARNING, "Network query failed"),
        (logging.ERROR, "Connect attempt rejected"),
        (logging.CRITICAL, "Stranded: no authorized backup networks"),
    ],
)

def test_logger_configuration(capsys, level, message):
    """Smoke test to ensure logger setup produces expected formatted output at various levels"""
    setup_logging(level=logging.DEBUG)  # always capture all messages
    logger = get_logger("test")

    logger.log(level, message)

    captured = capsys.readouterr()
    assert message in captured.out
    assert "network_failsafe.test" in captured.out


@pytest.mark.parametrize(
    "timing_enabled, expected_in_output",
    [
        # ✅ TIMING lines shown when enabled
        (True, True),

        # ❌ TIMING lines filtered out by default
        (False, False),
    ],
)

def test_timing_filter(capsys, timing_enabled, expected_in_output):
    """TIMING-level records only reach stdout when explicitly enabled"""
    setup_logging(level=logging.DEBUG, timing_enabled=timing_enabled)
    logger = get_logger("test")

    logger.timing("Timing | tick() [   1.0 ms]")

    captured = capsys.readouterr()
    assert ("Timing | tick()" in captured.out) is expected_in_output


def test_level_names_are_shortened(capsys):
    setup_logging(level=logging.DEBUG)
    logger = get_logger("test")

    logger.warning("short name")

    assert logging.getLevelName(TIMING) == "TIME"
    assert "⚠️" in capsys.readouterr().out


def test_log_file_receives_plain_records(tmp_path, capsys):
    log_path = tmp_path / "logs" / "failsafe.log"
    setup_logging(level=logging.INFO, timing_enabled=False, log_file=log_path)
    logger = get_logger("test")

    logger.warning("Switch failed")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_path.read_text(encoding="utf-8")
    assert "[WARN ]" in text
    assert "network_failsafe.test" in text
    assert "Switch failed" in text
    assert "Switch failed" in capsys.readouterr().out

    # Detach the file handler so later tests don't write into tmp_path
    setup_logging(level=logging.INFO, timing_enabled=False, log_file="")
