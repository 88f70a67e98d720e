"""User administration: directory, profiles, role/category/position changes."""
import logging
import secrets

from flask import Blueprint, request, jsonify
from markupsafe import escape
from werkzeug.security import generate_password_hash
from klub import access, mailer
from klub.app import db
from klub.models import User
from klub.auth_utils import login_required, president_required, staff_required
from klub.roles import Role, CATEGORIES, normalize_category, normalize_position
from klub.routes.auth import _normalize_email, _password_error
from klub.routes.helpers import _json_body, _clean_text, _get_row, _page_args
from klub.time_utils import parse_date

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)

_TEXT_FIELDS = {
    'imie': 120,
    'nazwisko': 120,
    'telefon': 40,
    'narodowosc': 80,
}
_CONTRACT_FIELDS = {
    'contractStart': 'contract_start',
    'contractEnd': 'contract_end',
}


def _get_user_or_404(user_id):
    user = _get_row(User, user_id)
    if not user:
        return None, (jsonify({'message': 'Nie znaleziono użytkownika'}), 404)
    return user, None


def _parse_contract_dates(data, user=None):
    """Return (column changes, error) for contract dates present in ``data``."""
    changes = {}
    for key, column in _CONTRACT_FIELDS.items():
        if key not in data:
            continue
        raw_value = data.get(key)
        if raw_value in (None, ''):
            changes[column] = None
            continue
        parsed = parse_date(raw_value)
        if parsed is None:
            return None, f'Nieprawidłowa data: {key}'
        changes[column] = parsed

    start = changes.get('contract_start', user.contract_start if user else None)
    end = changes.get('contract_end', user.contract_end if user else None)
    if start and end and end < start:
        return None, 'Koniec kontraktu nie może być przed jego początkiem'
    return changes, None


def _send_welcome_mail(user, temporary_password):
    html = (
        '<h2>Witaj w klubie!</h2>'
        f'<p>Cześć {escape(user.imie or "użytkowniku")}!</p>'
        '<p>Twoje konto zostało utworzone.</p>'
        f'<p>Login: <b>{escape(user.email)}</b><br/>'
        f'Hasło tymczasowe: <b>{escape(temporary_password)}</b></p>'
        '<p>Po pierwszym logowaniu zmień hasło.</p>'
    )
    try:
        mailer.send_mail(user.email, 'Konto w Klubie Piłkarskim', html)
        return True
    except mailer.MailError:
        logger.exception('Could not send welcome mail to user %s', user.id)
        return False


@admin_bp.route('/uzytkownicy', methods=['GET'])
@login_required
def list_users():
    """User directory, scoped to what the caller may see."""
    me = request.current_user
    query = access.scope_user_query(me, User.query, User)

    role = request.args.get('role')
    category = request.args.get('category')
    position = request.args.get('position')
    if role:
        query = query.filter(User.rola == role.strip().upper())
    if category:
        query = query.filter(User.kategoria == category.strip().upper())
    if position:
        query = query.filter(User.pozycja == position.strip().upper())

    limit, skip = _page_args()
    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
    return jsonify({
        'total': total,
        'limit': limit,
        'skip': skip,
        'data': [access.serialize_user_for(me, user) for user in users],
    })


@admin_bp.route('/uzytkownicy', methods=['POST'])
@staff_required
def create_user():
    me = request.current_user
    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    email = _normalize_email(data.get('email'))
    if not email:
        return jsonify({'message': 'Nieprawidłowy email'}), 400

    role = Role.parse(data.get('rola') or Role.PLAYER.value)
    if role is None:
        return jsonify({'message': 'Nieprawidłowa rola'}), 400

    default_category = me.kategoria if me.role is Role.COACH else 'BRAK'
    category = normalize_category(data.get('kategoria'), default=default_category)
    if category is None:
        return jsonify({'message': 'Nieprawidłowa kategoria'}), 400
    position_ok, position = normalize_position(data.get('pozycja'))
    if not position_ok:
        return jsonify({'message': 'Nieprawidłowa pozycja'}), 400

    if not access.can_create_user(me, role, category):
        return jsonify({
            'message': 'Możesz dodawać tylko zawodników ze swojej kategorii',
        }), 403

    password = data.get('haslo')
    temporary_password = None
    if password in (None, ''):
        temporary_password = secrets.token_urlsafe(9)
        password = temporary_password
    else:
        password_error = _password_error(password)
        if password_error:
            return jsonify({'message': password_error}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'message': 'Użytkownik już istnieje'}), 409

    user = User(
        email=email,
        password_hash=generate_password_hash(str(password)),
        rola=role.value,
        kategoria=category,
        pozycja=position,
    )
    for field, max_len in _TEXT_FIELDS.items():
        setattr(user, field, _clean_text(data.get(field), max_len))
    if access.can_change_privileged_fields(me):
        contract_changes, contract_error = _parse_contract_dates(data)
        if contract_error:
            return jsonify({'message': contract_error}), 400
        for column, value in contract_changes.items():
            setattr(user, column, value)

    db.session.add(user)
    db.session.commit()
    logger.info('User %s created %s account %s', me.id, user.rola, user.id)

    payload = {
        'id': user.id,
        'email': user.email,
        'rola': user.rola,
        'kategoria': user.kategoria,
        'message': 'Użytkownik utworzony',
    }
    if temporary_password:
        mailed = _send_welcome_mail(user, temporary_password)
        payload['tymczasoweHaslo'] = temporary_password
        payload['message'] = (
            'Użytkownik utworzony. Hasło tymczasowe zostało wygenerowane'
            + (' i wysłane mailem' if mailed else '')
        )
    return jsonify(payload), 201


@admin_bp.route('/uzytkownicy/<int:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    me = request.current_user
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    if not access.can_view_user(me, target):
        return jsonify({'message': 'Dostęp zabroniony'}), 403
    return jsonify(access.serialize_user_for(me, target))


@admin_bp.route('/uzytkownicy/<int:user_id>', methods=['PUT'])
@staff_required
def update_user(user_id):
    me = request.current_user
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    if not access.can_edit_user(me, target):
        return jsonify({'message': 'Nie masz uprawnień do edycji tego użytkownika'}), 403

    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    privileged = {'rola', 'kategoria', 'email', *_CONTRACT_FIELDS}
    if privileged.intersection(data) and not access.can_change_privileged_fields(me):
        return jsonify({
            'message': 'Nie możesz zmieniać roli, kategorii, emaila ani kontraktu',
        }), 403

    changes = {
        field: _clean_text(data.get(field), max_len)
        for field, max_len in _TEXT_FIELDS.items()
        if field in data
    }

    if 'pozycja' in data:
        position_ok, position = normalize_position(data.get('pozycja'))
        if not position_ok:
            return jsonify({'message': 'Nieprawidłowa pozycja'}), 400
        changes['pozycja'] = position

    if 'rola' in data:
        role = Role.parse(data.get('rola'))
        if role is None:
            return jsonify({'message': 'Nieprawidłowa rola'}), 400
        changes['rola'] = role.value

    if 'kategoria' in data:
        category = normalize_category(data.get('kategoria'))
        if category is None:
            return jsonify({'message': 'Nieprawidłowa kategoria'}), 400
        changes['kategoria'] = category

    if 'email' in data:
        email = _normalize_email(data.get('email'))
        if not email:
            return jsonify({'message': 'Nieprawidłowy email'}), 400
        if email != target.email and User.query.filter_by(email=email).first():
            return jsonify({'message': 'Email jest już zajęty'}), 409
        changes['email'] = email

    contract_changes, contract_error = _parse_contract_dates(data, target)
    if contract_error:
        return jsonify({'message': contract_error}), 400
    changes.update(contract_changes)

    for column, value in changes.items():
        setattr(target, column, value)
    db.session.commit()
    return jsonify(access.serialize_user_for(me, target))


@admin_bp.route('/uzytkownicy/<int:user_id>', methods=['DELETE'])
@president_required
def delete_user(user_id):
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    if target.id == request.current_user.id:
        return jsonify({'message': 'Nie możesz usunąć własnego konta'}), 400
    db.session.delete(target)
    db.session.commit()
    logger.info('User %s deleted account %s', request.current_user.id, user_id)
    return jsonify({'message': 'Użytkownik usunięty'})


@admin_bp.route('/uzytkownicy/<int:user_id>/role', methods=['PATCH'])
@president_required
def change_role(user_id):
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    data = _json_body() or {}
    role = Role.parse(data.get('rola'))
    if role is None:
        return jsonify({'message': 'Nieprawidłowa rola'}), 400
    target.rola = role.value
    db.session.commit()
    return jsonify({'message': 'Rola zmieniona', 'user': target.to_dict()})


@admin_bp.route('/uzytkownicy/<int:user_id>/position', methods=['PATCH'])
@president_required
def change_position(user_id):
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    data = _json_body() or {}
    if 'pozycja' not in data:
        return jsonify({'message': 'Nieprawidłowa pozycja'}), 400
    position_ok, position = normalize_position(data.get('pozycja'))
    if not position_ok:
        return jsonify({'message': 'Nieprawidłowa pozycja'}), 400
    target.pozycja = position
    db.session.commit()
    return jsonify({'message': 'Pozycja zmieniona', 'user': target.to_dict()})


@admin_bp.route('/uzytkownicy/<int:user_id>/category', methods=['PATCH'])
@president_required
def change_category(user_id):
    target, error = _get_user_or_404(user_id)
    if error:
        return error
    data = _json_body() or {}
    raw_category = str(data.get('kategoria') or '').strip().upper()
    if raw_category not in CATEGORIES:
        return jsonify({'message': 'Nieprawidłowa kategoria'}), 400
    target.kategoria = raw_category
    db.session.commit()
    return jsonify({'message': 'Kategoria zmieniona', 'user': target.to_dict()})
