"""SMTP delivery for club notifications."""
import logging
import smtplib
import socket
import ssl
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


class MailError(RuntimeError):
    """Raised when a message could not be handed to the SMTP server."""


def _normalize_recipients(to):
    if isinstance(to, str):
        to = [to]
    seen = set()
    recipients = []
    for address in to or []:
        cleaned = str(address or '').strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            recipients.append(cleaned)
    return recipients


def _build_message(sender, recipients, subject, html_body):
    msg = EmailMessage()
    msg['From'] = sender
    msg['To'] = ', '.join(recipients)
    msg['Subject'] = subject
    msg.set_content('Ta wiadomość wymaga klienta poczty obsługującego HTML.')
    msg.add_alternative(html_body, subtype='html')
    return msg


def send_mail(to, subject, html_body):
    """Send one HTML message to one or many addresses.

    With ``MAIL_SUPPRESS_SEND`` the message is recorded in
    ``app.extensions['mail_outbox']`` instead of being delivered.
    """
    recipients = _normalize_recipients(to)
    if not recipients:
        raise MailError('Brak adresów odbiorców')

    cfg = current_app.config
    sender = cfg.get('MAIL_FROM') or cfg.get('SMTP_USER')
    msg = _build_message(sender, recipients, subject, html_body)

    if cfg.get('MAIL_SUPPRESS_SEND'):
        current_app.extensions.setdefault('mail_outbox', []).append(msg)
        logger.info('Mail suppressed: %r to %d recipient(s)', subject, len(recipients))
        return msg

    host = cfg.get('SMTP_HOST')
    port = int(cfg.get('SMTP_PORT') or 587)
    user = cfg.get('SMTP_USER')
    password = cfg.get('SMTP_PASSWORD')
    timeout = cfg.get('SMTP_TIMEOUT_SECONDS', 20)
    if not host:
        raise MailError('Brak konfiguracji SMTP (SMTP_HOST)')

    context = ssl.create_default_context()
    try:
        if port == 465:
            with smtplib.SMTP_SSL(host, port, context=context, timeout=timeout) as server:
                if user:
                    server.login(user, password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=timeout) as server:
                server.ehlo()
                if server.has_extn('starttls'):
                    server.starttls(context=context)
                    server.ehlo()
                if user:
                    server.login(user, password)
                server.send_message(msg)
    except smtplib.SMTPAuthenticationError as exc:
        raise MailError('SMTP: błąd logowania (sprawdź poświadczenia)') from exc
    except (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected,
            socket.timeout, TimeoutError, ConnectionError) as exc:
        raise MailError(f'SMTP: problem z połączeniem do {host}:{port}') from exc
    except (smtplib.SMTPException, OSError) as exc:
        raise MailError(f'SMTP: nie udało się wysłać wiadomości: {exc}') from exc

    logger.info('Mail sent: %r to %d recipient(s)', subject, len(recipients))
    return msg
