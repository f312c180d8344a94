from letsorder.services import invitations
from letsorder.services.notifications import (
    MockNotificationService,
    NotificationResult,
    RealNotificationService,
)


class FailingMailer(MockNotificationService):
    async def send_email(self, to_email, subject, body_html, body_text=None):
        return NotificationResult(success=False, error_message="boom", provider="failing")


async def test_invite_email_escapes_restaurant_name():
    mailer = MockNotificationService()
    captured = {}

    async def capture(to_email, subject, body_html, body_text=None):
        captured["html"] = body_html
        return NotificationResult(success=True, provider="mock")

    mailer.send_email = capture
    await mailer.send_manager_invite(
        to_email="e2@x.com",
        restaurant_name="<b>Bad</b> & Co",
        invite_url="https://app.example.com/join?a=1&b=2",
        can_manage_menu=True,
        expires_at_text="2026-01-01 00:00 UTC",
    )
    assert "&lt;b&gt;Bad&lt;/b&gt; &amp; Co" in captured["html"]
    assert "a=1&amp;b=2" in captured["html"]


async def test_unconfigured_sendgrid_reports_failure():
    mailer = RealNotificationService(api_key=None)
    result = await mailer.send_email("e2@x.com", "hi", "<p>hi</p>")
    assert result.success is False
    assert await mailer.health_check() is False


async def test_failed_delivery_does_not_fail_invite(db, world):
    issued = await invitations.issue_invite(
        db, world.owner.id, world.restaurant.id, "e2@x.com", False, notifier=FailingMailer()
    )
    assert issued.invite_token
