import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives

logger = logging.getLogger(__name__)


def send_mail(to, subject, html=None, text=None):
    """
    Best-effort delivery. Returns True when the backend accepted the message;
    any failure is logged and swallowed so callers are never blocked.
    """
    recipients = [to] if isinstance(to, str) else list(to or [])
    if not recipients:
        logger.warning("send_mail called without recipients (subject=%r)", subject)
        return False

    message = EmailMultiAlternatives(
        subject=subject,
        body=text or "",
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=recipients,
    )
    if html:
        message.attach_alternative(html, "text/html")

    try:
        message.send()
    except Exception:
        logger.exception("Failed to send mail %r to %s", subject, recipients)
        return False
    return True


def make_reset_link(uid, token):
    base = settings.FRONTEND_BASE_URL.rstrip("/")
    return f"{base}/reset-password?uid={uid}&token={token}"


def send_password_reset(user, uid, token):
    link = make_reset_link(uid, token)
    app = settings.APP_NAME
    text = (
        f"Hello {user.name or user.username},\n\n"
        f"Use the link below to reset your {app} password:\n{link}\n\n"
        "If you did not request this, you can ignore this email."
    )
    html = (
        f"<p>Hello {user.name or user.username},</p>"
        f"<p>Use the link below to reset your {app} password:</p>"
        f'<p><a href="{link}">{link}</a></p>'
        "<p>If you did not request this, you can ignore this email.</p>"
    )
    return send_mail(user.email, f"[{app}] Reset your password", html=html, text=text)
