"""Push notifications to a topic-based notification service."""

from __future__ import annotations

import base64
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from app.schemas import AlertAttempt, AlertOutcome
from settings import Settings

logger = logging.getLogger(__name__)

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def _encode_header(value: str) -> str:
    """RFC 2047 encoded-word for non-ASCII values; ntfy decodes these."""
    if value.isascii():
        return value
    encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
    return f"=?UTF-8?B?{encoded}?="


class AlertDispatcher:
    """Posts a text body with ``Title``/``Priority`` headers to ``{base_url}/{topic}``.

    Transport errors and retryable statuses are retried with exponential
    backoff up to ``notify_max_attempts``. Failures are logged and returned,
    never raised.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self._client = client or httpx.Client(timeout=settings.notify_timeout_seconds)
        self._sleep = sleep

    @property
    def topic_url(self) -> Optional[str]:
        if not self.settings.ntfy_topic:
            return None
        return f"{self.settings.ntfy_base_url.rstrip('/')}/{self.settings.ntfy_topic}"

    def send(self, device_id: str, message: str) -> AlertAttempt:
        created_at = datetime.now(timezone.utc)
        url = self.topic_url
        if url is None:
            logger.error(
                "Notification topic is not configured; alert dropped",
                extra={"device_id": device_id, "reason": "missing topic"},
            )
            return AlertAttempt(
                device_id=device_id,
                message=message,
                created_at=created_at,
                outcome=AlertOutcome.skipped,
                error="Notification topic is not configured.",
            )

        headers = {
            "Title": _encode_header(self.settings.alert_title),
            "Priority": _encode_header(self.settings.alert_priority),
        }
        max_attempts = max(1, self.settings.notify_max_attempts)
        status_code: Optional[int] = None
        error: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = self._client.post(url, headers=headers, content=message)
            except httpx.HTTPError as exc:
                status_code = None
                error = f"{type(exc).__name__}: {exc}"
                retryable = True
            except (httpx.InvalidURL, UnicodeError) as exc:
                status_code = None
                error = f"{type(exc).__name__}: {exc}"
                retryable = False
            else:
                status_code = response.status_code
                if response.is_success:
                    logger.info(
                        "Alert delivered",
                        extra={"device_id": device_id, "attempt": attempt, "status_code": status_code},
                    )
                    return AlertAttempt(
                        device_id=device_id,
                        message=message,
                        created_at=created_at,
                        outcome=AlertOutcome.delivered,
                        attempts=attempt,
                        status_code=status_code,
                    )
                error = f"notification service responded with status {status_code}"
                retryable = status_code in _RETRYABLE_STATUSES

            if not retryable or attempt == max_attempts:
                break
            delay = self.settings.notify_backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "Alert delivery failed, retrying in %.2fs",
                delay,
                extra={"device_id": device_id, "attempt": attempt, "status_code": status_code, "reason": error},
            )
            self._sleep(delay)

        logger.error(
            "Failed to send alert",
            extra={"device_id": device_id, "attempt": attempt, "status_code": status_code, "reason": error},
        )
        return AlertAttempt(
            device_id=device_id,
            message=message,
            created_at=created_at,
            outcome=AlertOutcome.failed,
            attempts=attempt,
            status_code=status_code,
            error=error,
        )

    def close(self) -> None:
        self._client.close()
