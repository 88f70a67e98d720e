"""Role-restricted mail between club members."""
import logging

from flask import Blueprint, request, jsonify
from klub import access, mailer
from klub.models import User
from klub.auth_utils import login_required, staff_required
from klub.roles import CATEGORIES
from klub.routes.helpers import _json_body, _parse_id_list

mail_bp = Blueprint('mail', __name__)
logger = logging.getLogger(__name__)

SUBJECT_MIN_LENGTH = 5
BODY_MIN_LENGTH = 10


def _message_error(data):
    subject = str(data.get('subject') or '').strip()
    html = str(data.get('html') or '')
    if len(subject) < SUBJECT_MIN_LENGTH:
        return f'subject: Temat musi mieć min {SUBJECT_MIN_LENGTH} znaków'
    if len(html.strip()) < BODY_MIN_LENGTH:
        return f'html: Treść musi mieć min {BODY_MIN_LENGTH} znaków'
    return None


def _deliver(emails, subject, html):
    """Send and translate transport failures into a 502 response."""
    try:
        mailer.send_mail(emails, subject, html)
    except mailer.MailError as exc:
        logger.exception('Mail delivery failed for %d recipient(s)', len(emails))
        return jsonify({'message': f'Nie udało się wysłać maila: {exc}'}), 502
    return None


@mail_bp.route('/send', methods=['POST'])
@login_required
def send():
    me = request.current_user
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    recipient_ids = _parse_id_list(data.get('to'))
    if not recipient_ids:
        return jsonify({'message': 'to: Wymagana lista odbiorców'}), 400
    message_error = _message_error(data)
    if message_error:
        return jsonify({'message': message_error}), 400

    unique_ids = list(dict.fromkeys(recipient_ids))
    recipients = User.query.filter(User.id.in_(unique_ids)).all()
    if len(recipients) != len(unique_ids):
        return jsonify({'message': 'Nie znaleziono części odbiorców'}), 404

    for recipient in recipients:
        denial = access.message_denial(me, recipient)
        if denial:
            return jsonify({'message': denial}), 403

    emails = [recipient.email for recipient in recipients if recipient.email]
    if not emails:
        return jsonify({'message': 'Brak prawidłowych adresów email wśród odbiorców'}), 400

    error = _deliver(emails, str(data['subject']).strip(), str(data['html']))
    if error:
        return error
    return jsonify({
        'message': 'Mail wysłany pomyślnie',
        'sentTo': len(emails),
        'recipients': [
            {
                'id': recipient.id,
                'email': recipient.email,
                'imie': recipient.imie,
                'nazwisko': recipient.nazwisko,
            }
            for recipient in recipients
        ],
    })


@mail_bp.route('/send-category', methods=['POST'])
@staff_required
def send_category():
    me = request.current_user
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    category = str(data.get('category') or '').strip().upper()
    if category not in CATEGORIES:
        return jsonify({'message': 'category: Wymagana kategoria'}), 400
    message_error = _message_error(data)
    if message_error:
        return jsonify({'message': message_error}), 400
    if not access.can_mail_category(me, category):
        return jsonify({'message': 'Możesz wysyłać maile tylko do swojej kategorii'}), 403

    recipients = User.query.filter_by(kategoria=category).all()
    emails = [recipient.email for recipient in recipients if recipient.email]
    if not emails:
        return jsonify({'message': 'Brak użytkowników w tej kategorii'}), 400

    error = _deliver(emails, str(data['subject']).strip(), str(data['html']))
    if error:
        return error
    return jsonify({
        'message': 'Mail wysłany do kategorii',
        'sentTo': len(emails),
        'category': category,
    })
