"""Player reports for the club president, as JSON or CSV."""
import csv
import io

from flask import Blueprint, Response, request, jsonify
from klub.models import Statistic, User
from klub.auth_utils import president_required
from klub.roles import Role, CATEGORIES, POSITIONS
from klub.time_utils import utcnow_naive, isoformat_or_none

reports_bp = Blueprint('reports', __name__)

REPORT_FORMATS = ('json', 'csv')
ALL_SEASONS = 'wszystkie sezony'
CSV_HEADER = [
    'ID', 'Email', 'Imię', 'Nazwisko', 'Telefon', 'Narodowość', 'Pozycja', 'Kategoria',
    'Kontrakt od', 'Kontrakt do', 'Żółte kartki', 'Czerwone kartki', 'Rozegrane minuty',
    'Strzelone bramki', 'Odbyte treningi', 'Czyste konta',
]


def _statistic_for(player, season):
    query = Statistic.query.filter_by(player_id=player.id)
    if season:
        query = query.filter_by(sezon=season)
    return query.order_by(Statistic.updated_at.desc(), Statistic.id.desc()).first()


def _report_row(player, season):
    stat = _statistic_for(player, season)
    return {
        'userId': player.id,
        'email': player.email,
        'imie': player.imie,
        'nazwisko': player.nazwisko,
        'telefon': player.telefon,
        'narodowosc': player.narodowosc,
        'pozycja': player.pozycja,
        'kategoria': player.kategoria,
        'contractStart': isoformat_or_none(player.contract_start),
        'contractEnd': isoformat_or_none(player.contract_end),
        'statystyki': {'sezon': stat.sezon, **stat.counts()} if stat else None,
    }


def _csv_line(row):
    stats = row['statystyki'] or {}
    values = [
        row['userId'], row['email'], row['imie'], row['nazwisko'], row['telefon'],
        row['narodowosc'], row['pozycja'], row['kategoria'],
        row['contractStart'], row['contractEnd'],
    ] + [stats.get(key) for key in Statistic.FIELD_COLUMNS]
    return ['' if value is None else value for value in values]


def _render(rows, filename_stem, **extra):
    """Render report rows in the format requested by ``?format=``."""
    report_format = (request.args.get('format') or 'json').strip().lower()
    season = (request.args.get('sezon') or '').strip() or None
    if report_format == 'json':
        return jsonify({
            'format': 'json',
            'generatedAt': utcnow_naive().isoformat() + 'Z',
            'sezon': season or ALL_SEASONS,
            'total': len(rows),
            **extra,
            'data': rows,
        })

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow(_csv_line(row))
    filename = f'{filename_stem}_{utcnow_naive().date().isoformat()}.csv'
    return Response(
        output.getvalue(),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


def _player_rows(query):
    season = (request.args.get('sezon') or '').strip() or None
    players = query.order_by(User.nazwisko.asc(), User.imie.asc(), User.id.asc()).all()
    return [_report_row(player, season) for player in players]


def _format_error():
    report_format = (request.args.get('format') or 'json').strip().lower()
    if report_format not in REPORT_FORMATS:
        return jsonify({'message': 'Nieprawidłowy format. Użyj: json lub csv'}), 400
    return None


@reports_bp.route('/players', methods=['GET'])
@president_required
def players_report():
    error = _format_error()
    if error:
        return error
    rows = _player_rows(User.query.filter(User.rola == Role.PLAYER.value))
    return _render(rows, 'raport_zawodnikow')


@reports_bp.route('/category/<category>', methods=['GET'])
@president_required
def category_report(category):
    error = _format_error()
    if error:
        return error
    category = category.strip().upper()
    if category not in CATEGORIES:
        return jsonify({'message': 'Nieprawidłowa kategoria'}), 400
    rows = _player_rows(User.query.filter(
        User.rola == Role.PLAYER.value, User.kategoria == category))
    return _render(rows, f'raport_{category}', category=category)


@reports_bp.route('/position/<position>', methods=['GET'])
@president_required
def position_report(position):
    error = _format_error()
    if error:
        return error
    position = position.strip().upper()
    if position not in POSITIONS:
        return jsonify({'message': 'Nieprawidłowa pozycja'}), 400
    rows = _player_rows(User.query.filter(
        User.rola == Role.PLAYER.value, User.pozycja == position))
    return _render(rows, f'raport_{position}', position=position)
