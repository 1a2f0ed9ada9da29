# backend/app/tests/test_webpush_client.py
import json
import time
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from pywebpush import WebPushException

from app.core.config import Settings
from app.models.notification import DeliveryStatus, NotificationPayload
from app.models.push_subscription import PushKeys, Subscription
from app.services import webpush_client
from app.services.webpush_client import NullPushClient, WebPushClient, build_push_client

pytestmark = pytest.mark.asyncio


def _subscription(sub_id: str = "sub-1") -> Subscription:
    now = datetime.now(timezone.utc)
    return Subscription(
        id=sub_id,
        subscriber_id="u1",
        endpoint="https://push.example.com/send/abc",
        keys=PushKeys(p256dh="BPubKey", auth="authSecret"),
        created_at=now,
        updated_at=now,
    )


def _client() -> WebPushClient:
    return WebPushClient(vapid_private_key="private", vapid_subject="mailto:ops@example.com", timeout=3, ttl=60)


PAYLOAD = NotificationPayload(title="Backup", body="Servidor 2 sin respaldo", data={"server": "2"})


async def test_2xx_is_delivered_and_wire_format(monkeypatch):
    seen = {}

    def fake_webpush(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(status_code=201)

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)

    assert outcome.status is DeliveryStatus.DELIVERED
    assert outcome.subscription_id == "sub-1"
    assert seen["subscription_info"] == {
        "endpoint": "https://push.example.com/send/abc",
        "keys": {"p256dh": "BPubKey", "auth": "authSecret"},
    }
    assert seen["vapid_private_key"] == "private"
    assert seen["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert seen["timeout"] == 3
    assert seen["ttl"] == 60
    body = json.loads(seen["data"])
    assert body == {
        "title": "Backup",
        "body": "Servidor 2 sin respaldo",
        "icon": "/icons/icon-192x192.png",
        "badge": "/icons/icon-192x192.png",
        "data": {"server": "2"},
    }


@pytest.mark.parametrize("status_code", [404, 410])
async def test_gone_endpoint_is_permanent(monkeypatch, status_code):
    def fake_webpush(**kwargs):
        raise WebPushException("Push failed", response=SimpleNamespace(status_code=status_code))

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.PERMANENT_FAILURE
    assert outcome.diagnostic == f"gone:{status_code}"


@pytest.mark.parametrize("status_code", [400, 413, 429, 500, 503])
async def test_other_provider_errors_are_transient(monkeypatch, status_code):
    def fake_webpush(**kwargs):
        raise WebPushException("Push failed", response=SimpleNamespace(status_code=status_code))

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE


@pytest.mark.parametrize("status_code", [203, 204, 299])
async def test_2xx_raised_by_pywebpush_is_delivered(monkeypatch, status_code):
    # pywebpush lanza WebPushException para todo status > 202
    def fake_webpush(**kwargs):
        raise WebPushException("Push failed", response=SimpleNamespace(status_code=status_code))

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.DELIVERED
    assert outcome.diagnostic is None


async def test_slow_provider_hits_total_deadline(monkeypatch):
    def trickling_webpush(**kwargs):
        time.sleep(1.0)
        return SimpleNamespace(status_code=201)

    monkeypatch.setattr(webpush_client, "webpush", trickling_webpush)
    client = WebPushClient(
        vapid_private_key="private",
        vapid_subject="mailto:ops@example.com",
        timeout=0.05,
        deadline_slack=0.05,
    )

    started = time.monotonic()
    outcome = await client.deliver(_subscription(), PAYLOAD)

    assert time.monotonic() - started < 0.8
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE
    assert outcome.diagnostic.startswith("TimeoutError")


async def test_push_exception_without_response_is_transient(monkeypatch):
    def fake_webpush(**kwargs):
        raise WebPushException("bad keys")

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE
    assert "bad keys" in outcome.diagnostic


@pytest.mark.parametrize("exc", [TimeoutError("timed out"), ConnectionError("reset"), ValueError("garbage")])
async def test_network_errors_never_raise(monkeypatch, exc):
    def fake_webpush(**kwargs):
        raise exc

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE
    assert type(exc).__name__ in outcome.diagnostic


async def test_unexpected_success_shape_is_transient(monkeypatch):
    monkeypatch.setattr(webpush_client, "webpush", lambda **kwargs: SimpleNamespace(status_code=302))
    outcome = await _client().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE
    assert outcome.diagnostic == "unexpected_status:302"


async def test_claims_dict_is_fresh_per_call(monkeypatch):
    claims = []

    def fake_webpush(**kwargs):
        # pywebpush agrega aud/exp al dict recibido
        kwargs["vapid_claims"]["aud"] = "https://push.example.com"
        claims.append(kwargs["vapid_claims"])
        return SimpleNamespace(status_code=201)

    monkeypatch.setattr(webpush_client, "webpush", fake_webpush)
    client = _client()
    await client.deliver(_subscription("a"), PAYLOAD)
    await client.deliver(_subscription("b"), PAYLOAD)
    assert claims[0] is not claims[1]
    assert client.vapid_subject == "mailto:ops@example.com"


async def test_null_client_never_sends(monkeypatch):
    def boom(**kwargs):
        raise AssertionError("no debería llamarse")

    monkeypatch.setattr(webpush_client, "webpush", boom)
    outcome = await NullPushClient().deliver(_subscription(), PAYLOAD)
    assert outcome.status is DeliveryStatus.TRANSIENT_FAILURE
    assert outcome.diagnostic == "push_disabled"


async def test_build_push_client_depends_on_credentials():
    disabled = build_push_client(Settings(VAPID_PUBLIC_KEY="", VAPID_PRIVATE_KEY=""))
    assert isinstance(disabled, NullPushClient)

    half = build_push_client(Settings(VAPID_PUBLIC_KEY="pub", VAPID_PRIVATE_KEY=""))
    assert isinstance(half, NullPushClient)

    enabled = build_push_client(Settings(
        VAPID_PUBLIC_KEY="pub",
        VAPID_PRIVATE_KEY="priv",
        VAPID_SUBJECT="mailto:x@example.com",
        PUSH_TIMEOUT_SECONDS=5,
    ))
    assert isinstance(enabled, WebPushClient)
    assert enabled.vapid_private_key == "priv"
    assert enabled.timeout == 5
