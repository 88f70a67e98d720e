"""Mail reminders for events starting soon."""
import logging
from datetime import timedelta

from flask import current_app
from markupsafe import escape
from klub import mailer
from klub.app import db, socketio
from klub.models import Event, User
from klub.roles import Role, ATTENDING, NO_CATEGORY
from klub.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


def reminder_recipients(event):
    """Addresses to remind: attending players, the category's coaches, presidents."""
    attending_ids = [
        player_id for player_id, status in event.participant_statuses().items()
        if status == ATTENDING
    ]
    users = []
    if attending_ids:
        users.extend(User.query.filter(
            User.id.in_(attending_ids), User.rola == Role.PLAYER.value).all())

    coaches = User.query.filter(User.rola == Role.COACH.value)
    if event.kategoria != NO_CATEGORY:
        coaches = coaches.filter(User.kategoria == event.kategoria)
    users.extend(coaches.all())
    users.extend(User.query.filter(User.rola == Role.PRESIDENT.value).all())

    emails = []
    seen = set()
    for user in users:
        email = (user.email or '').strip().lower()
        if email and email not in seen:
            seen.add(email)
            emails.append(user.email)
    return emails


def _reminder_body(event):
    when = event.data.strftime('%d.%m.%Y %H:%M')
    subject = f'Przypomnienie: {event.tytul} ({event.typ}) - {when}'
    html = (
        '<p>Cześć,</p>'
        f'<p>Wkrótce odbędzie się: <b>{escape(event.tytul)}</b> [{escape(event.typ)}]</p>'
        f'<p>Data: <b>{when}</b></p>'
        + (f'<p>Miejsce: {escape(event.lokalizacja)}</p>' if event.lokalizacja else '')
        + (f'<p>Opis: {escape(event.opis)}</p>' if event.opis else '')
        + '<p>Pozdrawiamy,<br/>Klub</p>'
    )
    return subject, html


def due_events(now=None):
    now = now or utcnow_naive()
    window = timedelta(hours=current_app.config.get('REMINDER_WINDOW_HOURS', 48))
    return (
        Event.query.filter(
            Event.reminder_sent.is_(False),
            Event.data >= now,
            Event.data <= now + window,
        )
        .order_by(Event.data.asc())
        .all()
    )


def send_due_reminders(now=None):
    """Send one reminder per due event; returns how many events were dispatched.

    An event is marked only after its mail went out, so a failed send is retried
    on the next run.
    """
    dispatched = 0
    for event in due_events(now):
        recipients = reminder_recipients(event)
        if not recipients:
            logger.info('No reminder recipients for event %s', event.id)
            continue
        subject, html = _reminder_body(event)
        try:
            mailer.send_mail(recipients, subject, html)
        except mailer.MailError:
            logger.exception('Reminder for event %s failed', event.id)
            continue
        event.reminder_sent = True
        db.session.commit()
        dispatched += 1
        logger.info('Reminder for event %s sent to %d recipient(s)', event.id, len(recipients))
    return dispatched


def _reminder_loop(app):
    interval = max(1, int(app.config.get('REMINDER_INTERVAL_SECONDS', 3600)))
    while True:
        with app.app_context():
            try:
                send_due_reminders()
            except Exception:
                logger.exception('Reminder run failed')
                db.session.rollback()
            finally:
                db.session.remove()
        socketio.sleep(interval)


def start_reminder_worker(app):
    """Start the periodic reminder task unless REMINDERS_ENABLED is off."""
    if not app.config.get('REMINDERS_ENABLED'):
        logger.info('Reminder worker disabled')
        return None
    logger.info('Starting reminder worker (every %ss)', app.config.get('REMINDER_INTERVAL_SECONDS'))
    return socketio.start_background_task(_reminder_loop, app)
