import json
from decimal import Decimal

import httpx
import pytest

from price_watch.db.models import NotificationState, Watcher
from price_watch.db.repository import WatcherRepository
from price_watch.db.sessions import create_db_engine, init_db
from price_watch.providers.explorer import ExplorerClient
from price_watch.providers.models import PushMessage
from price_watch.providers.push import PushTransportABC
from price_watch.services.notifications import NotificationDispatcher
from price_watch.services.price_cache import PriceCache
from price_watch.utils import encode_push_token

EXPLORER_URL = "https://explorer.test"
EXPLORER_ID = "svc-explorer-id"


class RecordingTransport(PushTransportABC):
    """Push transport double: records messages, can be told to fail."""

    def __init__(self) -> None:
        self.messages: list[PushMessage] = []
        self.fail = False

    async def send(self, message: PushMessage) -> str | None:
        self.messages.append(message)
        if self.fail:
            return None
        return f"msg-{len(self.messages)}"


class ExplorerStub:
    """Scriptable explorer backend served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.fail_actions: set[str] = set()
        self.scripts: dict[str, list[int]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        action = body["action"]
        if self.scripts.get(action):
            return httpx.Response(self.scripts[action].pop(0))
        if action in self.fail_actions:
            return httpx.Response(500, json={"error": "down"})
        return httpx.Response(200, json={"status": "OK"})

    def calls(self, action: str) -> list[dict]:
        return [r for r in self.requests if r["action"] == action]


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'watchers.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return WatcherRepository(engine)


@pytest.fixture
def cache():
    return PriceCache()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dispatcher(transport):
    return NotificationDispatcher(transport, android_channel="price-alerts")


@pytest.fixture
def explorer_stub():
    return ExplorerStub()


@pytest.fixture
async def explorer(explorer_stub):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(explorer_stub.handler), base_url=EXPLORER_URL
    )
    explorer = ExplorerClient(EXPLORER_URL, EXPLORER_ID, client=client)
    yield explorer
    await explorer.close()


@pytest.fixture
def make_watcher(repository):
    async def _make(
        raw_token: str,
        *,
        token_price: str | None = "100",
        threshold: int = 5,
        tx_notification: NotificationState = NotificationState.ON,
        addresses: list[str] | None = None,
        device_id: str | None = None,
    ) -> Watcher:
        return await repository.create(
            Watcher(
                push_token=encode_push_token(raw_token),
                device_id=device_id,
                threshold=threshold,
                token_price=Decimal(token_price) if token_price is not None else None,
                tx_notification=tx_notification,
                addresses=addresses or [],
            )
        )

    return _make
