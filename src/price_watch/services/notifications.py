"""Notification dispatch: one push message per alert decision."""
import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import httpx

from price_watch.core.exceptions import DeliveryFailure
from price_watch.providers.models import PushMessage
from price_watch.providers.push import PushTransportABC

logger = logging.getLogger(__name__)

# Transport exceptions we turn into DeliveryFailure; all others propagate.
_TRANSPORT_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    TimeoutError,
    OSError,
    ValueError,
)


def flatten_data(data: Mapping[str, Any]) -> dict[str, str]:
    """String-only copy of data for platforms that reject other value types.

    Strings pass through, numbers and booleans are stringified, dicts and
    lists are JSON-encoded, anything else is dropped.
    """
    flat: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, str):
            flat[key] = value
        elif isinstance(value, bool):
            flat[key] = "true" if value else "false"
        elif isinstance(value, (int, float, Decimal)):
            flat[key] = str(value)
        elif isinstance(value, (dict, list)):
            flat[key] = json.dumps(value, default=str)
    return flat


class NotificationDispatcher:
    """Formats a push message and hands it to the transport. Never retries."""

    def __init__(self, transport: PushTransportABC, android_channel: str) -> None:
        self._transport = transport
        self._android_channel = android_channel

    async def send(
        self,
        title: str,
        body: str,
        push_token: str,
        data: Mapping[str, Any],
    ) -> str:
        """Send one message and return its id.

        Args:
            title: Notification title.
            body: Notification body.
            push_token: Raw (decoded) push token of the destination device.
            data: Payload; flattened for Android, passed as-is for iOS.

        Raises:
            DeliveryFailure: The transport raised, timed out, or returned no id.
        """
        message = PushMessage(
            title=title,
            body=body,
            token=push_token,
            android_channel_id=self._android_channel,
            android_data=flatten_data(data),
            apns_data=dict(data),
        )
        try:
            message_id = await self._transport.send(message)
        except _TRANSPORT_EXCEPTIONS as exc:
            raise DeliveryFailure(f"Push delivery failed: {exc}") from exc
        if not message_id:
            raise DeliveryFailure("Push transport returned no message id")
        return message_id
