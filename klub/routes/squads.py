"""Match squads: starting eleven plus bench."""
from flask import Blueprint, request, jsonify
from klub import access
from klub.app import db
from klub.models import Event, Squad, User
from klub.auth_utils import login_required, staff_required
from klub.roles import (
    Role, MAX_STARTING, MAX_BENCH, NO_CATEGORY, SLOT_STARTING, SLOT_BENCH, normalize_category,
)
from klub.routes.helpers import _json_body, _clean_text, _get_row, _parse_id_list

squads_bp = Blueprint('squads', __name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100


def _get_visible_squad(squad_id):
    squad = _get_row(Squad, squad_id)
    if not squad:
        return None, (jsonify({'message': 'Kadra nie znaleziona'}), 404)
    if not access.can_view_category(request.current_user, squad.kategoria):
        return None, (jsonify({'message': 'Dostęp zabroniony'}), 403)
    return squad, None


def _validate_title(raw_title):
    title = _clean_text(raw_title, TITLE_MAX_LENGTH + 1)
    if len(title) < TITLE_MIN_LENGTH:
        return None, 'Tytuł musi mieć minimum 3 znaki'
    if len(title) > TITLE_MAX_LENGTH:
        return None, 'Tytuł nie może być dłuższy niż 100 znaków'
    return title, None


def _validate_lineup(me, raw_starting, raw_bench):
    """Return (starting_ids, bench_ids, error_response)."""
    starting_ids = _parse_id_list(raw_starting if raw_starting is not None else [])
    bench_ids = _parse_id_list(raw_bench if raw_bench is not None else [])
    if starting_ids is None or bench_ids is None:
        return None, None, (jsonify({'message': 'Błędne dane'}), 400)
    if len(starting_ids) > MAX_STARTING:
        return None, None, (jsonify({
            'message': f'Pierwsza jedenastka - maksymalnie {MAX_STARTING} zawodników',
        }), 400)
    if len(bench_ids) > MAX_BENCH:
        return None, None, (jsonify({
            'message': f'Ławka rezerwowych - maksymalnie {MAX_BENCH} zawodników',
        }), 400)

    all_ids = starting_ids + bench_ids
    if len(set(all_ids)) != len(all_ids):
        return None, None, (jsonify({'message': 'Zawodnik może wystąpić w kadrze tylko raz'}), 400)

    players = User.query.filter(User.id.in_(all_ids)).all() if all_ids else []
    if len(players) != len(all_ids):
        return None, None, (jsonify({'message': 'Nie znaleziono części zawodników'}), 400)
    if any(player.role is not Role.PLAYER for player in players):
        return None, None, (jsonify({'message': 'Kadra może zawierać tylko zawodników'}), 400)
    if not all(access.can_select_player(me, player) for player in players):
        return None, None, (jsonify({
            'message': 'Nie możesz dodawać zawodników z innej kategorii',
        }), 403)
    return starting_ids, bench_ids, None


def _resolve_category(me, raw_category, fallback):
    if me.role is Role.COACH:
        if raw_category in (None, '') or str(raw_category).strip().upper() == me.kategoria:
            return me.kategoria, None
        return None, (jsonify({'message': 'Możesz tworzyć kadry tylko dla swojej kategorii'}), 403)
    category = normalize_category(raw_category, default=fallback)
    if category is None:
        return None, (jsonify({'message': 'Nieprawidłowa kategoria'}), 400)
    return category, None


def _resolve_event_id(raw_event_id):
    """Return (event_id, error_response); the fixture must be visible to the caller."""
    if raw_event_id in (None, ''):
        return None, None
    ids = _parse_id_list([raw_event_id])
    if ids is None:
        return None, (jsonify({'message': 'Nieprawidłowe wydarzenie'}), 400)
    event = _get_row(Event, ids[0])
    if not event or not access.can_view_category(request.current_user, event.kategoria):
        return None, (jsonify({'message': 'Nieprawidłowe wydarzenie'}), 400)
    return event.id, None


@squads_bp.route('', methods=['POST'])
@staff_required
def create_squad():
    me = request.current_user
    data = _json_body()
    if not data:
        return jsonify({'message': 'Błędne dane'}), 400

    title, title_error = _validate_title(data.get('title'))
    if title_error:
        return jsonify({'message': title_error}), 400
    starting_ids, bench_ids, error = _validate_lineup(
        me, data.get('startingEleven'), data.get('bench'))
    if error:
        return error
    default_category = me.kategoria if me.role is Role.COACH else NO_CATEGORY
    category, error = _resolve_category(me, data.get('kategoria'), default_category)
    if error:
        return error
    event_id, error = _resolve_event_id(data.get('wydarzenieId'))
    if error:
        return error

    squad = Squad(title=title, kategoria=category, event_id=event_id, created_by_id=me.id)
    db.session.add(squad)
    squad.replace_members(starting_ids, bench_ids)
    db.session.commit()
    return jsonify(squad.to_dict()), 201


@squads_bp.route('', methods=['GET'])
@login_required
def list_squads():
    query = Squad.query
    categories = access.visible_categories(request.current_user)
    if categories is not None:
        query = query.filter(Squad.kategoria.in_(categories))
    squads = query.order_by(Squad.created_at.desc(), Squad.id.desc()).all()
    return jsonify([squad.to_dict() for squad in squads])


@squads_bp.route('/<int:squad_id>', methods=['GET'])
@login_required
def get_squad(squad_id):
    squad, error = _get_visible_squad(squad_id)
    if error:
        return error
    return jsonify(squad.to_dict())


@squads_bp.route('/<int:squad_id>', methods=['PATCH'])
@staff_required
def update_squad(squad_id):
    me = request.current_user
    squad, error = _get_visible_squad(squad_id)
    if error:
        return error
    if not access.can_manage_owned(me, squad.created_by_id):
        return jsonify({'message': 'Nie masz uprawnień do edycji tej kadry'}), 403

    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400

    changes = {}
    if 'title' in data:
        title, title_error = _validate_title(data.get('title'))
        if title_error:
            return jsonify({'message': title_error}), 400
        changes['title'] = title
    if 'kategoria' in data:
        category, error = _resolve_category(me, data.get('kategoria'), squad.kategoria)
        if error:
            return error
        changes['kategoria'] = category
    if 'wydarzenieId' in data:
        event_id, error = _resolve_event_id(data.get('wydarzenieId'))
        if error:
            return error
        changes['event_id'] = event_id

    lineup = None
    if 'startingEleven' in data or 'bench' in data:
        starting_ids, bench_ids, error = _validate_lineup(
            me,
            data.get('startingEleven', squad.player_ids(SLOT_STARTING)),
            data.get('bench', squad.player_ids(SLOT_BENCH)),
        )
        if error:
            return error
        lineup = (starting_ids, bench_ids)

    for column, value in changes.items():
        setattr(squad, column, value)
    if lineup is not None:
        squad.replace_members(*lineup)
    db.session.commit()
    return jsonify({'message': 'Kadra meczowa zaktualizowana', 'squad': squad.to_dict()})


@squads_bp.route('/<int:squad_id>', methods=['DELETE'])
@staff_required
def delete_squad(squad_id):
    squad, error = _get_visible_squad(squad_id)
    if error:
        return error
    if not access.can_manage_owned(request.current_user, squad.created_by_id):
        return jsonify({'message': 'Nie masz uprawnień do usunięcia tej kadry'}), 403
    db.session.delete(squad)
    db.session.commit()
    return jsonify({'message': 'Kadra meczowa usunięta'})
