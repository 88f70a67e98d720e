import re

from flask import Blueprint, request, jsonify
from werkzeug.security import generate_password_hash, check_password_hash
from klub.app import db
from klub.models import User
from klub.auth_utils import generate_token, login_required
from klub.roles import Role, normalize_category, normalize_position
from klub.routes.helpers import _json_body, _clean_text

auth_bp = Blueprint('auth', __name__)

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_PASSWORD_LENGTH = 8


def _normalize_email(raw_value):
    email = str(raw_value or '').strip().lower()
    if not _EMAIL_PATTERN.match(email):
        return None
    return email


def _password_error(raw_password):
    if len(str(raw_password or '')) < MIN_PASSWORD_LENGTH:
        return f'Hasło musi mieć min. {MIN_PASSWORD_LENGTH} znaków'
    return None


@auth_bp.route('/rejestracja', methods=['POST'])
def register():
    """Self sign-up; always creates a player account."""
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    email = _normalize_email(data.get('email'))
    if not email:
        return jsonify({'message': 'Nieprawidłowy email'}), 400
    password_error = _password_error(data.get('haslo'))
    if password_error:
        return jsonify({'message': password_error}), 400

    requested_role = data.get('rola')
    if requested_role not in (None, ''):
        role = Role.parse(requested_role)
        if role is None:
            return jsonify({'message': 'Nieprawidłowa rola'}), 400
        if role is not Role.PLAYER:
            return jsonify({
                'message': 'Konta trenerów i prezesa zakłada tylko prezes',
            }), 403

    category = normalize_category(data.get('kategoria'))
    if category is None:
        return jsonify({'message': 'Nieprawidłowa kategoria'}), 400
    position_ok, position = normalize_position(data.get('pozycja'))
    if not position_ok:
        return jsonify({'message': 'Nieprawidłowa pozycja'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'message': 'Użytkownik już istnieje'}), 409

    user = User(
        email=email,
        password_hash=generate_password_hash(str(data['haslo'])),
        rola=Role.PLAYER.value,
        kategoria=category,
        pozycja=position,
        imie=_clean_text(data.get('imie'), 120),
        nazwisko=_clean_text(data.get('nazwisko'), 120),
        telefon=_clean_text(data.get('telefon'), 40),
        narodowosc=_clean_text(data.get('narodowosc'), 80),
    )
    db.session.add(user)
    db.session.commit()
    return jsonify({'id': user.id, 'email': user.email, 'rola': user.rola}), 201


@auth_bp.route('/logowanie', methods=['POST'])
def login():
    data = _json_body()
    if not data or not data.get('email') or not data.get('haslo'):
        return jsonify({'message': 'Email i hasło są wymagane'}), 400

    email = str(data['email']).strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(data['haslo'])):
        return jsonify({'message': 'Nieprawidłowe dane logowania'}), 401

    token = generate_token(user)
    return jsonify({'token': token, 'uzytkownik': user.to_dict()})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(request.current_user.to_dict())
