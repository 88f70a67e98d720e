"""Club calendar: events, training attendance."""
from flask import Blueprint, request, jsonify
from klub import access
from klub.app import db
from klub.models import Event, EventParticipant
from klub.auth_utils import login_required, roles_required, staff_required
from klub.roles import (
    Role, EVENT_TYPES, TRAINING, ATTENDING, NOT_ATTENDING, NO_CATEGORY, normalize_category,
)
from klub.routes.helpers import _json_body, _bounded_text, _get_row
from klub.time_utils import parse_datetime

events_bp = Blueprint('events', __name__)

_TEXT_LIMITS = {
    'tytul': 200,
    'opis': 5000,
    'lokalizacja': 300,
}


def _get_visible_event(event_id):
    """Load an event the current user may read, or return an error response."""
    event = _get_row(Event, event_id)
    if not event:
        return None, (jsonify({'message': 'Nie znaleziono wydarzenia'}), 404)
    if not access.can_view_category(request.current_user, event.kategoria):
        return None, (jsonify({'message': 'Dostęp zabroniony'}), 403)
    return event, None


def _resolve_category(me, raw_category, fallback):
    """Return (category, error_response) for an event written by ``me``."""
    if me.role is Role.COACH:
        if raw_category in (None, '') or str(raw_category).strip().upper() == me.kategoria:
            return me.kategoria, None
        return None, (jsonify({
            'message': 'Możesz planować wydarzenia tylko dla swojej kategorii',
        }), 403)
    category = normalize_category(raw_category, default=fallback)
    if category is None:
        return None, (jsonify({'message': 'Nieprawidłowa kategoria'}), 400)
    return category, None


def _text_changes(data):
    """Return (column changes, error) for the free-text fields present in ``data``."""
    changes = {}
    for field, max_len in _TEXT_LIMITS.items():
        if field not in data:
            continue
        text, too_long = _bounded_text(data.get(field), max_len)
        if too_long:
            return None, f'{field}: maksymalnie {max_len} znaków'
        changes[field] = text
    if 'tytul' in changes and not changes['tytul']:
        return None, 'Tytuł jest wymagany'
    return changes, None


def _parse_attendance(data):
    """Return TAK/NIE from ``wezmieUdzial`` (bool) or ``odpowiedz``; None if invalid."""
    if 'wezmieUdzial' in data:
        value = data.get('wezmieUdzial')
        if not isinstance(value, bool):
            return None
        return ATTENDING if value else NOT_ATTENDING
    answer = str(data.get('odpowiedz') or '').strip().upper()
    if answer in (ATTENDING, NOT_ATTENDING):
        return answer
    return None


@events_bp.route('', methods=['GET'])
@login_required
def list_events():
    """List events visible to the caller, ordered by start time."""
    me = request.current_user
    query = Event.query
    categories = access.visible_categories(me)
    if categories is not None:
        query = query.filter(Event.kategoria.in_(categories))

    event_type = (request.args.get('typ') or '').strip().upper()
    if event_type:
        query = query.filter(Event.typ == event_type)
    starts_after = parse_datetime(request.args.get('od'))
    if starts_after:
        query = query.filter(Event.data >= starts_after)
    starts_before = parse_datetime(request.args.get('do'))
    if starts_before:
        query = query.filter(Event.data <= starts_before)

    events = query.order_by(Event.data.asc(), Event.id.asc()).all()
    return jsonify([access.serialize_event_for(me, event) for event in events])


@events_bp.route('', methods=['POST'])
@staff_required
def create_event():
    me = request.current_user
    data = _json_body()
    if not data or not data.get('tytul') or not data.get('typ') or not data.get('data'):
        return jsonify({'message': 'Brak wymaganych pól'}), 400

    event_type = str(data['typ']).strip().upper()
    if event_type not in EVENT_TYPES:
        return jsonify({'message': 'Nieprawidłowy typ wydarzenia'}), 400
    starts_at = parse_datetime(data['data'])
    if not starts_at:
        return jsonify({'message': 'Nieprawidłowa data'}), 400
    ends_at = None
    if data.get('dataKonca'):
        ends_at = parse_datetime(data['dataKonca'])
        if not ends_at or ends_at < starts_at:
            return jsonify({'message': 'Nieprawidłowa data zakończenia'}), 400

    texts, text_error = _text_changes(data)
    if text_error:
        return jsonify({'message': text_error}), 400
    category, error = _resolve_category(me, data.get('kategoria'), NO_CATEGORY)
    if error:
        return error

    event = Event(
        tytul=texts['tytul'],
        opis=texts.get('opis', ''),
        typ=event_type,
        data=starts_at,
        data_konca=ends_at,
        lokalizacja=texts.get('lokalizacja', ''),
        kategoria=category,
        creator_id=me.id,
    )
    db.session.add(event)
    db.session.commit()
    return jsonify(access.serialize_event_for(me, event, detail=True)), 201


@events_bp.route('/<int:event_id>', methods=['GET'])
@login_required
def get_event(event_id):
    event, error = _get_visible_event(event_id)
    if error:
        return error
    return jsonify(access.serialize_event_for(request.current_user, event, detail=True))


@events_bp.route('/<int:event_id>', methods=['PATCH'])
@staff_required
def update_event(event_id):
    me = request.current_user
    event, error = _get_visible_event(event_id)
    if error:
        return error
    if not access.can_manage_owned(me, event.creator_id):
        return jsonify({'message': 'Nie masz uprawnień do edycji tego wydarzenia'}), 403

    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    changes, text_error = _text_changes(data)
    if text_error:
        return jsonify({'message': text_error}), 400
    if 'typ' in data:
        event_type = str(data.get('typ') or '').strip().upper()
        if event_type not in EVENT_TYPES:
            return jsonify({'message': 'Nieprawidłowy typ wydarzenia'}), 400
        changes['typ'] = event_type
    if 'data' in data:
        starts_at = parse_datetime(data.get('data'))
        if not starts_at:
            return jsonify({'message': 'Nieprawidłowa data'}), 400
        changes['data'] = starts_at
    if 'dataKonca' in data:
        if data.get('dataKonca') in (None, ''):
            changes['data_konca'] = None
        else:
            ends_at = parse_datetime(data.get('dataKonca'))
            if not ends_at:
                return jsonify({'message': 'Nieprawidłowa data zakończenia'}), 400
            changes['data_konca'] = ends_at
    if 'kategoria' in data:
        category, error = _resolve_category(me, data.get('kategoria'), event.kategoria)
        if error:
            return error
        changes['kategoria'] = category

    starts_at = changes.get('data', event.data)
    ends_at = changes.get('data_konca', event.data_konca)
    if ends_at and ends_at < starts_at:
        return jsonify({'message': 'Nieprawidłowa data zakończenia'}), 400

    if 'data' in changes and changes['data'] != event.data:
        event.reminder_sent = False
    if changes.get('typ', TRAINING) != TRAINING:
        event.participants.clear()
    for column, value in changes.items():
        setattr(event, column, value)
    db.session.commit()
    return jsonify(access.serialize_event_for(me, event, detail=True))


@events_bp.route('/<int:event_id>', methods=['DELETE'])
@staff_required
def delete_event(event_id):
    me = request.current_user
    event, error = _get_visible_event(event_id)
    if error:
        return error
    if not access.can_manage_owned(me, event.creator_id):
        return jsonify({'message': 'Nie masz uprawnień do usunięcia tego wydarzenia'}), 403
    db.session.delete(event)
    db.session.commit()
    return jsonify({'message': 'Wydarzenie usunięte'})


@events_bp.route('/<int:event_id>/udzial', methods=['POST'])
@roles_required(Role.PLAYER)
def respond_to_training(event_id):
    """Record the player's attendance; one entry per player, latest answer wins."""
    me = request.current_user
    event, error = _get_visible_event(event_id)
    if error:
        return error
    if event.typ != TRAINING:
        return jsonify({'message': 'Udział można oznaczać tylko dla TRENINGU'}), 400

    status = _parse_attendance(_json_body() or {})
    if status is None:
        return jsonify({'message': 'Pole wezmieUdzial musi być wartością logiczną'}), 400

    if me.id in event.participant_statuses():
        event.participant_for(me.id).status = status
    else:
        event.participants.append(EventParticipant(player_id=me.id, status=status))
    db.session.commit()
    return jsonify({'message': 'Zapisano udział', 'status': status})


@events_bp.route('/<int:event_id>/uczestnicy', methods=['GET'])
@staff_required
def list_participants(event_id):
    event, error = _get_visible_event(event_id)
    if error:
        return error
    return jsonify([participant.to_dict() for participant in event.participants])
