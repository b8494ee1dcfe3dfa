import pytest
import logging
import requests
import responses
from unittest.mock import patch

from network_failsafe.notify import (
    CRITICAL,
    LogNotifier,
    WebhookNotifier,
    build_notifier,
)


NTFY_URL = "https://ntfy.example.test/failsafe"


# ===============================
# TEST GROUP: Webhook Notifier
# ===============================
# Method: WebhookNotifier.send()
# ------------------------------
@pytest.mark.parametrize(
    "severity, expected_priority",
    [
        (None, "default"),
        (CRITICAL, "urgent"),
    ],
)

@responses.activate
def test_send_posts_title_and_priority(severity, expected_priority):
    """Notification is POSTed with title/priority headers and the body as payload"""
    responses.add(responses.POST, NTFY_URL, status=200)
    notifier = WebhookNotifier(NTFY_URL)

    assert notifier.send("Connection Lost", "No authorized backup networks found in range.", severity) is True

    request = responses.calls[0].request
    assert request.headers["Title"] == "Connection Lost"
    assert request.headers["Priority"] == expected_priority
    assert request.body == b"No authorized backup networks found in range."


@responses.activate
def test_send_http_error_is_swallowed():
    responses.add(responses.POST, NTFY_URL, status=503)
    notifier = WebhookNotifier(NTFY_URL)

    assert notifier.send("Connected", "Successfully switched to Home") is False


@patch("network_failsafe.notify.requests.post", side_effect=requests.exceptions.ConnectionError("Boom"))
def test_send_network_error_is_swallowed(mock_post):
    notifier = WebhookNotifier(NTFY_URL)

    assert notifier.send("Connected", "Successfully switched to Home") is False


@responses.activate
def test_call_is_fire_and_forget():
    """__call__ hands delivery to the worker and returns immediately"""
    responses.add(responses.POST, NTFY_URL, status=200)
    notifier = WebhookNotifier(NTFY_URL)

    assert notifier("Network Switch", "Attempting to connect to: Home") is None
    notifier.close()   # flush the worker

    assert len(responses.calls) == 1


# ===========================
# TEST GROUP: Log Notifier
# ===========================
@pytest.mark.parametrize(
    "severity, expected_level",
    [
        (None, logging.INFO),
        (CRITICAL, logging.CRITICAL),
    ],
)

def test_log_notifier_levels(caplog, severity, expected_level):
    with caplog.at_level(logging.DEBUG):
        LogNotifier()("Connection Lost", "No authorized backup networks found in range.", severity)

    record = caplog.records[-1]
    assert record.levelno == expected_level
    assert "Connection Lost" in record.getMessage()


# ===========================
# TEST GROUP: Notifier Factory
# ===========================
def test_build_notifier_prefers_webhook():
    notifier = build_notifier(NTFY_URL)

    assert isinstance(notifier, WebhookNotifier)
    notifier.close()


def test_build_notifier_defaults_to_log(monkeypatch):
    monkeypatch.setattr("network_failsafe.notify.Config.NOTIFY_URL", None)

    assert isinstance(build_notifier(), LogNotifier)
