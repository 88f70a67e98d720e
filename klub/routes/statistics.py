"""Per-season player statistics."""
import math

from flask import Blueprint, request, jsonify
from klub import access
from klub.app import db
from klub.models import Statistic, User
from klub.auth_utils import login_required, staff_required
from klub.roles import Role
from klub.routes.helpers import MAX_DB_INT, _json_body, _bounded_text, _get_row, _parse_count

statistics_bp = Blueprint('statistics', __name__)

SEASON_MAX_LENGTH = 20


def _clean_season(raw_value):
    """Return (season or None, error); an over-long season is rejected, never cut."""
    season, too_long = _bounded_text(raw_value, SEASON_MAX_LENGTH)
    if too_long:
        return None, f'sezon: maksymalnie {SEASON_MAX_LENGTH} znaków'
    return season or None, None


def _parse_counts(data):
    """Return (counts, error) for the counter fields present in ``data``."""
    counts = {}
    for key in Statistic.FIELD_COLUMNS:
        if key not in data:
            continue
        value = _parse_count(data.get(key))
        if value is None:
            return None, f'{key}: wartość musi być nieujemną liczbą całkowitą'
        counts[key] = value
    return counts, None


def _get_player_or_404(player_id):
    player = _get_row(User, player_id)
    if not player or player.role is not Role.PLAYER:
        return None, (jsonify({'message': 'Nie znaleziono zawodnika'}), 404)
    return player, None


def _scoped_players(me):
    """Query of players whose statistics ``me`` may read."""
    query = User.query.filter(User.rola == Role.PLAYER.value)
    return access.scope_player_query(me, query, User)


@statistics_bp.route('/filters/available', methods=['GET'])
@login_required
def available_filters():
    me = request.current_user
    players = _scoped_players(me).all()
    player_ids = [player.id for player in players]
    seasons = set()
    if player_ids:
        seasons = {
            row.sezon for row in Statistic.query.filter(
                Statistic.player_id.in_(player_ids), Statistic.sezon.isnot(None)
            )
        }
    categories = set()
    positions = set()
    if access.can_see_roster(me):
        categories = {player.kategoria for player in players if player.kategoria}
        positions = {player.pozycja for player in players if player.pozycja}
    return jsonify({
        'kategorie': sorted(categories),
        'pozycje': sorted(positions),
        'sezony': sorted(seasons, reverse=True),
    })


@statistics_bp.route('/<int:player_id>', methods=['POST'])
@staff_required
def upsert_statistics(player_id):
    """Create or update the player's card for one season.

    Only fields present in the body are written; a new card starts from zeros.
    """
    me = request.current_user
    player, error = _get_player_or_404(player_id)
    if error:
        return error
    if not access.can_edit_statistics(me, player):
        return jsonify({
            'message': 'Nie możesz edytować statystyk zawodników z innej kategorii',
        }), 403

    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400
    counts, count_error = _parse_counts(data)
    if count_error:
        return jsonify({'message': count_error}), 400
    season, season_error = _clean_season(data.get('sezon'))
    if season_error:
        return jsonify({'message': season_error}), 400

    stat = Statistic.query.filter_by(player_id=player.id, sezon=season).first()
    status = 200
    if stat is None:
        stat = Statistic(player_id=player.id, sezon=season)
        stat.apply_counts({key: 0 for key in Statistic.FIELD_COLUMNS})
        db.session.add(stat)
        status = 201
    stat.apply_counts(counts)
    db.session.commit()
    return jsonify(stat.to_dict()), status


@statistics_bp.route('/<int:player_id>', methods=['GET'])
@login_required
def get_statistics(player_id):
    me = request.current_user
    player, error = _get_player_or_404(player_id)
    if error:
        return error
    if not access.can_view_statistics(me, player):
        return jsonify({'message': 'Dostęp zabroniony'}), 403

    season, season_error = _clean_season(request.args.get('sezon'))
    if season_error:
        return jsonify({'message': season_error}), 400
    query = Statistic.query.filter_by(player_id=player.id)
    if season:
        query = query.filter_by(sezon=season)
    stat = query.order_by(Statistic.updated_at.desc(), Statistic.id.desc()).first()
    return jsonify(stat.to_dict() if stat else {})


@statistics_bp.route('', methods=['GET'])
@staff_required
def list_statistics():
    me = request.current_user
    query = Statistic.query.join(User, Statistic.player_id == User.id).filter(
        User.rola == Role.PLAYER.value)
    query = access.scope_player_query(me, query, User)

    season, season_error = _clean_season(request.args.get('sezon'))
    if season_error:
        return jsonify({'message': season_error}), 400
    if season:
        query = query.filter(Statistic.sezon == season)
    category = (request.args.get('kategoria') or '').strip().upper()
    if category:
        query = query.filter(User.kategoria == category)
    position = (request.args.get('pozycja') or '').strip().upper()
    if position:
        query = query.filter(User.pozycja == position)
    player_id = request.args.get('zawodnikId', type=int)
    if player_id:
        if player_id < 0 or player_id > MAX_DB_INT:
            return jsonify({'message': 'Nieprawidłowy zawodnikId'}), 400
        query = query.filter(Statistic.player_id == player_id)

    limit = max(1, min(100, request.args.get('limit', type=int) or 100))
    page = max(1, min(MAX_DB_INT // limit, request.args.get('page', type=int) or 1))
    total = query.count()
    rows = (
        query.order_by(Statistic.created_at.desc(), Statistic.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return jsonify({
        'data': [stat.to_dict() for stat in rows],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': math.ceil(total / limit),
        },
    })


@statistics_bp.route('/<int:stat_id>', methods=['PATCH'])
@staff_required
def update_statistics(stat_id):
    me = request.current_user
    stat = _get_row(Statistic, stat_id)
    if not stat:
        return jsonify({'message': 'Statystyki nie znalezione'}), 404
    if not stat.player or not access.can_edit_statistics(me, stat.player):
        return jsonify({
            'message': 'Nie możesz edytować statystyk zawodników z innej kategorii',
        }), 403

    data = _json_body()
    if data is None:
        return jsonify({'message': 'Błędne dane'}), 400
    counts, count_error = _parse_counts(data)
    if count_error:
        return jsonify({'message': count_error}), 400

    if 'sezon' in data:
        season, season_error = _clean_season(data.get('sezon'))
        if season_error:
            return jsonify({'message': season_error}), 400
        clash = Statistic.query.filter(
            Statistic.player_id == stat.player_id,
            Statistic.sezon.is_(None) if season is None else Statistic.sezon == season,
            Statistic.id != stat.id,
        ).first()
        if clash:
            return jsonify({'message': 'Statystyki dla tego sezonu już istnieją'}), 409
        stat.sezon = season
    stat.apply_counts(counts)
    db.session.commit()
    return jsonify(stat.to_dict())
