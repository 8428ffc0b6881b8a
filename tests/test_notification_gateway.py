"""Tests del gateway de notificaciones y sus canales."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests
from python_http_client.exceptions import HTTPError
from sendgrid.helpers.mail import Mail

from common.config import Settings
from toollife_api.notifications.base import DispatchOutcome
from toollife_api.notifications.email_channel import EmailChannel
from toollife_api.notifications.gateway import NotificationGateway
from toollife_api.notifications.payload import AlertNotification
from toollife_api.notifications.push_channel import PushChannel
from toollife_api.notifications.recipients import get_supervisor_push_tokens
from toollife_api.tool_life.models import AlertTier, ToolAlert

from conftest import FakeEmailChannel, FakePushChannel


@pytest.fixture
def notification() -> AlertNotification:
    alert = ToolAlert(
        tool_id=7,
        tool_name="Drill 8mm",
        tool_life_threshold=1000,
        cumulative_usage=1400,
        alert_type=AlertTier.CRITICAL,
        usage_percentage=140.0,
        remaining_life=0,
        alert_message="msg",
        alert_description="desc",
        created_at=datetime.now(timezone.utc),
        components_used=["C1", "C2"],
    )
    return AlertNotification.from_alert(alert)


def _response(status: int, payload=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = ""
    response.json.return_value = payload or {}
    return response


class TestDispatchOutcome:
    @pytest.mark.parametrize(
        "email, push, ok",
        [(True, True, True), (True, False, True), (False, True, True), (False, False, False)],
    )
    def test_success_is_email_or_push(self, email, push, ok):
        assert DispatchOutcome(email_sent=email, push_sent=push).ok is ok


class TestNotificationGateway:
    def test_email_failure_does_not_block_push(self, notification):
        email = FakeEmailChannel(raises=requests.ConnectionError("down"))
        push = FakePushChannel()
        gateway = NotificationGateway(email=email, push=push)

        outcome = gateway.dispatch("sup@plant.local", notification, ["t1", "t2"])

        assert outcome.ok
        assert outcome.email_sent is False
        assert outcome.email_error == "ConnectionError"
        assert outcome.push_sent is True
        assert push.sent[0]["title"] == "🚨 CRITICAL: Tool 7 Replacement Required"
        assert push.sent[0]["data"]["tool_id"] == "7"

    def test_no_recipients_is_failure(self, notification):
        gateway = NotificationGateway(email=FakeEmailChannel(), push=FakePushChannel())
        assert gateway.dispatch(None, notification, []).ok is False

    def test_both_channels_fail(self, notification):
        gateway = NotificationGateway(
            email=FakeEmailChannel(success=False), push=FakePushChannel(raises=RuntimeError("fcm"))
        )
        outcome = gateway.dispatch("sup@plant.local", notification, ["t1"])
        assert not outcome.ok
        assert outcome.push_error == "RuntimeError"

    def test_init_is_idempotent(self):
        settings = Settings(
            database_url="sqlite://",
            environment="test",
            api_key=None,
            sendgrid_api_key="SG.key",
            email_from="alerts@plant.local",
            email_from_name="Plant Alerts",
            push_gateway_url=None,
            internal_api_key=None,
            notify_timeout_seconds=2.0,
            notify_workers=1,
            ledger_append_attempts=3,
        )
        gateway = NotificationGateway()
        assert not gateway.initialized

        gateway.init(settings)
        first_email = gateway._email
        gateway.init(settings)

        assert gateway.initialized
        assert gateway._email is first_email
        assert gateway.email_enabled is True
        assert gateway.push_enabled is False


class _SendGridUnauthorized(HTTPError):
    def __init__(self):
        Exception.__init__(self, "HTTP Error 401: Unauthorized")
        self.status_code = 401


class TestEmailChannel:
    def test_sends_mail_through_sdk_client(self, notification):
        client = MagicMock()
        client.send.return_value = _response(202)
        channel = EmailChannel("SG.key", "alerts@plant.local", "Plant Alerts", client=client)

        result = channel.send_tool_life_alert("sup@plant.local", notification)

        assert result.success
        message = client.send.call_args[0][0]
        assert isinstance(message, Mail)
        body = message.get()
        assert body["personalizations"][0]["to"][0]["email"] == "sup@plant.local"
        assert body["from"] == {"email": "alerts@plant.local", "name": "Plant Alerts"}
        assert body["subject"] == "🚨 CRITICAL: Tool 7 - Drill 8mm Requires Immediate Replacement"
        assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]

    def test_default_client_has_bounded_timeout(self):
        channel = EmailChannel("SG.key", "alerts@plant.local", "Plant Alerts", timeout_seconds=3)
        assert channel._client.client.timeout == 3

    def test_http_error_is_failure(self, notification):
        client = MagicMock()
        client.send.side_effect = _SendGridUnauthorized()
        channel = EmailChannel("SG.key", "a@b.c", "X", client=client)

        result = channel.send_tool_life_alert("sup@plant.local", notification)
        assert not result.success
        assert result.error == "HTTP 401"

    def test_unexpected_status_is_failure(self, notification):
        client = MagicMock()
        client.send.return_value = _response(400)
        channel = EmailChannel("SG.key", "a@b.c", "X", client=client)

        assert channel.send_tool_life_alert("sup@plant.local", notification).error == "HTTP 400"

    def test_disabled_without_api_key(self, notification):
        client = MagicMock()
        channel = EmailChannel(None, "a@b.c", "X", client=client)

        assert not channel.enabled
        assert not channel.send_tool_life_alert("sup@plant.local", notification).success
        client.send.assert_not_called()


class TestPushChannel:
    def test_success_when_any_token_delivered(self):
        http = MagicMock()
        http.post.return_value = _response(200, {"successCount": 1, "failureCount": 1})
        channel = PushChannel("http://notify.local/", "internal", http=http)

        result = channel.send_to_many(["t1", "t2"], "title", "body", {"type": "TOOL_LIFE_ALERT"})

        assert result.success
        assert result.delivered == 1
        args, kwargs = http.post.call_args
        assert args[0] == "http://notify.local/notifications/internal/send-multicast"
        assert kwargs["headers"]["X-Internal-Key"] == "internal"

    def test_zero_delivered_is_failure(self):
        http = MagicMock()
        http.post.return_value = _response(200, {"successCount": 0})
        channel = PushChannel("http://notify.local", "internal", http=http)

        assert not channel.send_to_many(["t1"], "t", "b", {}).success

    def test_disabled_without_gateway(self):
        channel = PushChannel(None, None, http=MagicMock())
        assert not channel.enabled
        assert not channel.send_to_many(["t1"], "t", "b", {}).success


class TestRecipients:
    def test_only_active_supervisors_with_push_enabled(self, db, make_supervisor):
        make_supervisor(username="sup1", tokens=("tok-1", "tok-shared"))
        make_supervisor(username="sup2", tokens=("tok-shared",))
        make_supervisor(username="inactive", tokens=("tok-x",), is_active=False)
        make_supervisor(username="muted", tokens=("tok-y",), push_notifications_enabled=False)
        make_supervisor(username="operator", tokens=("tok-z",), role="User")

        assert get_supervisor_push_tokens(db) == ["tok-1", "tok-shared"]


class TestPayload:
    def test_warning_texts(self, notification):
        warning = AlertNotification(
            tool_id=3,
            tool_name="Tap",
            cumulative_usage=950,
            threshold=1000,
            usage_percentage=95.0,
            remaining_life=50,
            alert_type=AlertTier.WARNING,
        )
        assert warning.push_title == "⚠️ WARNING: Tool 3 Nearing End of Life"
        assert warning.push_body == "Tap - 95.0% used, 50 units remaining"
        assert "Remaining Life: 50 units" in warning.email_text()
        assert "Components Affected: C1, C2" in notification.email_text()

    def test_html_escapes_free_text(self):
        link = '<a href="http://evil.example">click</a>'
        crafted = AlertNotification(
            tool_id=4,
            tool_name="Drill <b>8mm</b>",
            cumulative_usage=1000,
            threshold=1000,
            usage_percentage=100.0,
            remaining_life=0,
            alert_type=AlertTier.CRITICAL,
            components=[link, "C2"],
        )

        body = crafted.email_html()

        assert "<a href" not in body
        assert "&lt;a href=&quot;http://evil.example&quot;&gt;click&lt;/a&gt;, C2" in body
        assert "Drill &lt;b&gt;8mm&lt;/b&gt;" in body
        # El texto plano no es HTML: se deja tal cual.
        assert link in crafted.email_text()
