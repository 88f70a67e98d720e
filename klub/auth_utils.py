from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import request, jsonify, current_app
from klub.app import db
from klub.models import User
from klub.roles import Role


def generate_token(user):
    """Generate a signed JWT carrying the user's id, role and category."""
    payload = {
        'sub': str(user.id),
        'rola': user.rola,
        'kategoria': user.kategoria,
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24)
        ),
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def _decode_user_from_token(token):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Brak tokenu autoryzacyjnego'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
        user_id = int(payload['sub'])
    except jwt.ExpiredSignatureError:
        return None, 'Token wygasł'
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        return None, 'Nieprawidłowy token'

    user = db.session.get(User, user_id)
    if not user:
        return None, 'Użytkownik nie istnieje'
    return user, None


def login_required(f):
    """Decorator to require a valid bearer token on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        user, error = _decode_user_from_token(auth_header)
        if error:
            return jsonify({'message': error}), 401
        request.current_user = user
        return f(*args, **kwargs)
    return decorated


def roles_required(*roles):
    """Decorator to require an authenticated user holding one of ``roles``."""
    allowed = {Role(role) for role in roles}

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if request.current_user.role not in allowed:
                return jsonify({'message': 'Dostęp zabroniony'}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def president_required(f):
    return roles_required(Role.PRESIDENT)(f)


def staff_required(f):
    return roles_required(Role.PRESIDENT, Role.COACH)(f)
