"""SMTP-backed email dispatcher for account notifications."""
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from html import escape

from flask import current_app


class EmailDeliveryError(Exception):
    """Raised when email dispatch fails."""


def _resolve_sender(fallback: str | None = None) -> str:
    return current_app.config.get("MAIL_DEFAULT_SENDER") or (fallback or "")


def _html_wrap(paragraphs: list[str], link: str | None = None, link_label: str = "") -> str:
    body = "".join(f"<p>{escape(p)}</p>" for p in paragraphs)
    if link:
        body += f'<p><a href="{escape(link, quote=True)}">{escape(link_label or link)}</a></p>'
    return f"<html><body>{body}</body></html>"


def _dispatch_email(subject: str, text_body: str, html_body: str, sender: str, recipients: list[str]) -> None:
    if not recipients:
        raise EmailDeliveryError("No recipients resolved for email dispatch")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    msg["Reply-To"] = sender
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    msg.set_content(text_body)
    msg.add_alternative(html_body, subtype="html")

    host = current_app.config.get("MAIL_SERVER")
    port = int(current_app.config.get("MAIL_PORT", 25))
    username = current_app.config.get("MAIL_USERNAME")
    password = current_app.config.get("MAIL_PASSWORD")
    use_tls = bool(current_app.config.get("MAIL_USE_TLS"))
    use_ssl = bool(current_app.config.get("MAIL_USE_SSL"))

    if not host:
        raise EmailDeliveryError("MAIL_SERVER is not configured")

    try:
        if use_ssl:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(host, port, context=context, timeout=10) as server:
                if username and password:
                    server.login(username, password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=10) as server:
                server.ehlo()
                if use_tls:
                    server.starttls(context=ssl.create_default_context())
                if username and password:
                    server.login(username, password)
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - external I/O
        raise EmailDeliveryError(str(exc)) from exc

    current_app.logger.info("email_sent", extra={"subject": subject, "recipients": len(recipients)})


def send_welcome_email(recipient: str, fullname: str) -> None:
    subject = "Welcome to CitizenX"
    paragraphs = [
        f"Hello {fullname},",
        "Your CitizenX account is ready. Reports you submit earn reward points once reviewed.",
    ]
    _dispatch_email(subject, "\n\n".join(paragraphs), _html_wrap(paragraphs), _resolve_sender(recipient), [recipient])


def send_password_reset_email(recipient: str, reset_link: str, expires_minutes: int) -> None:
    subject = "Reset Password"
    paragraphs = [
        "A password reset was requested for your CitizenX account.",
        f"The link below expires in {expires_minutes} minutes. Ignore this email if you did not ask for it.",
    ]
    text_body = "\n\n".join(paragraphs + [reset_link])
    html_body = _html_wrap(paragraphs, link=reset_link, link_label="Reset your password")
    _dispatch_email(subject, text_body, html_body, _resolve_sender(recipient), [recipient])
