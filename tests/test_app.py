from unittest.mock import MagicMock

import pytest
import requests

from learnhub.clients.email import EmailMessage, ResendEmailSender
from learnhub.clients.payments import StripePaymentSessionCreator
from learnhub.clients.video import MuxPlaybackProvider
from learnhub.core.cache import CatalogCache
from learnhub.core.exceptions import UpstreamServiceError


def test_root(client):
    data = client.get("/").json()

    assert data["status"] == "healthy"
    assert data["environment"] == "development"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "healthy"
    assert "X-Request-ID" in response.headers


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


def test_resend_sender_posts_with_idempotency_key():
    session = MagicMock()
    session.post.return_value.json.return_value = {"id": "email_1"}
    sender = ResendEmailSender("re_key", "receipts@example.com", "LearnHub", session=session)

    email_id = sender.send(
        EmailMessage(to="a@example.com", subject="Hi", html="<p>Hi</p>", idempotency_key="k1")
    )

    assert email_id == "email_1"
    _, kwargs = session.post.call_args
    assert kwargs["headers"]["Idempotency-Key"] == "k1"
    assert kwargs["json"]["from"] == "LearnHub <receipts@example.com>"


def test_resend_sender_wraps_transport_errors():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("offline")
    sender = ResendEmailSender("re_key", "receipts@example.com", session=session)

    with pytest.raises(UpstreamServiceError):
        sender.send(EmailMessage(to="a@example.com", subject="Hi", html="<p>Hi</p>"))


def test_unconfigured_providers_fail_fast():
    with pytest.raises(UpstreamServiceError):
        ResendEmailSender("", "receipts@example.com").send(
            EmailMessage(to="a@example.com", subject="Hi", html="")
        )
    with pytest.raises(UpstreamServiceError):
        StripePaymentSessionCreator("").retrieve_session("cs_1")


def test_mux_playback_urls():
    info = MuxPlaybackProvider().playback_info("a4nOgmxGWg6gULfcBbAa00")

    assert info.stream_url == "https://stream.mux.com/a4nOgmxGWg6gULfcBbAa00.m3u8"
    assert info.thumbnail_url.endswith("/a4nOgmxGWg6gULfcBbAa00/thumbnail.jpg")


def test_mux_rejects_short_playback_id():
    with pytest.raises(UpstreamServiceError):
        MuxPlaybackProvider().playback_info("short")


def test_catalog_cache_without_redis_is_a_no_op():
    cache = CatalogCache(None)
    cache.set("k", {"a": 1})
    assert cache.get("k") is None
    cache.invalidate()
