# --- Standard library imports ---
import logging
from typing import Callable, Optional
from concurrent.futures import ThreadPoolExecutor

# --- Third-party imports ---
import requests

# --- Project imports ---
from .config import Config
from .logger import get_logger


logger = get_logger("notify")

# Fire-and-forget sink: (title, body, severity)
Notifier = Callable[[str, str, Optional[str]], None]

CRITICAL = "critical"


class LogNotifier:
    """Routes user-facing notifications into the log stream."""

    def __call__(self, title: str, body: str, severity: str | None = None) -> None:
        level = logging.CRITICAL if severity == CRITICAL else logging.INFO
        logger.log(level, f"🔔 {title} | {body}")


class WebhookNotifier:
    """
    Push notifications to an ntfy-style HTTP endpoint.

    Delivery runs on a single background worker; the caller never waits
    on, or inspects, the outcome.
    """

    def __init__(self, url: str, timeout: float = Config.NOTIFY_TIMEOUT_S):
        self.url = url
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notify")

    def __call__(self, title: str, body: str, severity: str | None = None) -> None:
        self._executor.submit(self.send, title, body, severity)

    def send(self, title: str, body: str, severity: str | None = None) -> bool:
        """
        Deliver a single notification synchronously.

        Returns:
            True if the endpoint accepted it, False otherwise.
        """
        headers = {
            "Title": title,
            "Priority": "urgent" if severity == CRITICAL else "default",
            "Tags": "rotating_light" if severity == CRITICAL else "satellite",
        }

        try:
            resp = requests.post(
                self.url,
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return True

        except requests.RequestException as e:
            logger.warning(f"Notification delivery failed ({e.__class__.__name__}): {title}")
            return False

    def close(self) -> None:
        """Flush pending deliveries and release the worker."""
        self._executor.shutdown(wait=True)


def build_notifier(url: str | None = None) -> Notifier:
    """Webhook notifier when a URL is configured, log notifier otherwise."""
    url = url if url is not None else Config.NOTIFY_URL
    if url:
        logger.info(f"🔔 Notifications → {url}")
        return WebhookNotifier(url)
    return LogNotifier()
