"""Password reset and change."""
import hashlib
import logging
import secrets
from datetime import timedelta

from flask import Blueprint, request, jsonify, current_app
from markupsafe import escape
from werkzeug.security import generate_password_hash, check_password_hash
from klub import mailer
from klub.app import db
from klub.models import User
from klub.auth_utils import login_required
from klub.routes.auth import _password_error
from klub.routes.helpers import _json_body
from klub.time_utils import utcnow_naive

password_bp = Blueprint('password', __name__)
logger = logging.getLogger(__name__)

_FORGOT_RESPONSE = 'Jeśli email istnieje, wyślemy link do resetu hasła'


def _hash_reset_token(raw_token):
    return hashlib.sha256(str(raw_token or '').encode('utf-8')).hexdigest()


def _reset_ttl_minutes():
    raw_value = current_app.config.get('PASSWORD_RESET_TOKEN_TTL_MINUTES', 15)
    try:
        parsed = int(raw_value)
    except (TypeError, ValueError):
        parsed = 15
    return max(1, parsed)


def _reset_link(raw_token):
    base = str(current_app.config.get('FRONTEND_URL') or '').rstrip('/')
    return f'{base}/reset-password?token={raw_token}'


def _greeting(user):
    return escape(user.imie or 'użytkowniku')


@password_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400
    email = str(data.get('email') or '').strip().lower()
    if not email or '@' not in email:
        return jsonify({'message': 'Nieprawidłowy email'}), 400

    payload = {'message': _FORGOT_RESPONSE}
    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify(payload)

    reset_token = secrets.token_hex(32)
    ttl = _reset_ttl_minutes()
    user.reset_token_hash = _hash_reset_token(reset_token)
    user.reset_token_expires_at = utcnow_naive() + timedelta(minutes=ttl)
    db.session.commit()

    html = (
        '<h2>Reset hasła</h2>'
        f'<p>Cześć {_greeting(user)}!</p>'
        '<p>Kliknij poniższy link, aby zresetować hasło:</p>'
        f'<p><a href="{_reset_link(reset_token)}">Zresetuj hasło</a></p>'
        f'<p>Link wygasa za {ttl} minut.</p>'
        '<p>Jeśli to nie Ty prosisz o reset hasła, zignoruj tę wiadomość.</p>'
    )
    try:
        mailer.send_mail(user.email, 'Reset hasła – Klub Piłkarski', html)
    except mailer.MailError:
        logger.exception('Could not send password reset mail to user %s', user.id)
        return jsonify({'message': 'Nie udało się wysłać wiadomości'}), 502

    if current_app.config.get('TESTING'):
        payload['resetToken'] = reset_token
    return jsonify(payload)


@password_bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400
    reset_token = str(data.get('token') or '').strip()
    if len(reset_token) < 10:
        return jsonify({'message': 'token: Nieprawidłowy token'}), 400
    password_error = _password_error(data.get('noweHaslo'))
    if password_error:
        return jsonify({'message': f'noweHaslo: {password_error}'}), 400

    user = User.query.filter_by(reset_token_hash=_hash_reset_token(reset_token)).first()
    now = utcnow_naive()
    if not user or not user.reset_token_expires_at or user.reset_token_expires_at <= now:
        return jsonify({'message': 'Token jest nieprawidłowy lub wygasł'}), 400

    user.password_hash = generate_password_hash(str(data['noweHaslo']))
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.session.commit()

    html = (
        '<h2>Hasło zostało zmienione</h2>'
        f'<p>Cześć {_greeting(user)}!</p>'
        '<p>Twoje hasło zostało pomyślnie zmienione.</p>'
        '<p>Jeśli to nie ty, skontaktuj się z administratorem.</p>'
    )
    try:
        mailer.send_mail(user.email, 'Hasło zmienione – Klub Piłkarski', html)
    except mailer.MailError:
        # Password is already changed at this point.
        logger.exception('Could not send password change confirmation to user %s', user.id)

    return jsonify({'message': 'Hasło zostało zmienione pomyślnie'})


@password_bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400
    if not data.get('staroHaslo'):
        return jsonify({'message': 'staroHaslo: Stare hasło jest wymagane'}), 400
    password_error = _password_error(data.get('noweHaslo'))
    if password_error:
        return jsonify({'message': f'noweHaslo: {password_error}'}), 400

    user = request.current_user
    if not check_password_hash(user.password_hash, str(data['staroHaslo'])):
        return jsonify({'message': 'Stare hasło jest nieprawidłowe'}), 401

    user.password_hash = generate_password_hash(str(data['noweHaslo']))
    db.session.commit()
    return jsonify({'message': 'Hasło zmienione pomyślnie'})
