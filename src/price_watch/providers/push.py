"""Push transports: Firebase Cloud Messaging and an in-memory logging transport."""
import logging
from abc import ABC, abstractmethod
from collections import defaultdict

import httpx

from price_watch.providers.base import HttpProviderABC
from price_watch.providers.models import PushMessage

logger = logging.getLogger(__name__)


class PushTransportABC(ABC):
    """Delivers one PushMessage; returns the provider's message id or None."""

    @abstractmethod
    async def send(self, message: PushMessage) -> str | None:
        """Deliver a message. May raise on transport errors."""

    async def close(self) -> None:
        """Clean up resources. Override in subclasses if cleanup is needed."""


class FcmPushTransport(HttpProviderABC, PushTransportABC):
    """FCM HTTP v1 transport (projects/{project}/messages:send)."""

    BASE_URL = "https://fcm.googleapis.com/v1"

    def __init__(
        self,
        project_id: str,
        access_token: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            self.BASE_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            client=client,
        )
        self._project_id = project_id

    async def send(self, message: PushMessage) -> str | None:
        """POST the message; returns the FCM message name, e.g. projects/p/messages/1."""
        response = await self._client.post(
            f"/projects/{self._project_id}/messages:send",
            json={"message": self._build_payload(message)},
        )
        response.raise_for_status()
        return response.json().get("name")

    @staticmethod
    def _build_payload(message: PushMessage) -> dict:
        notification = {"title": message.title, "body": message.body}
        return {
            "token": message.token,
            "notification": notification,
            "android": {
                "notification": {
                    **notification,
                    "channel_id": message.android_channel_id,
                    "sound": "default",
                },
                "data": message.android_data,
            },
            "apns": {
                "payload": {
                    "aps": {"alert": notification, "sound": "default"},
                    **message.apns_data,
                },
            },
        }


class LoggingPushTransport(PushTransportABC):
    """Development transport: logs each message and keeps it per token."""

    def __init__(self) -> None:
        self._log: dict[str, list[PushMessage]] = defaultdict(list)

    async def send(self, message: PushMessage) -> str | None:
        logger.info("Push to %s: %s | %s | %s", message.token, message.title, message.body, message.android_data)
        self._log[message.token].append(message)
        return "dummy_message_id"

    def messages_for(self, token: str) -> list[PushMessage]:
        return list(self._log.get(token, []))
