"""Tests for president reports."""
import csv
import io

from klub.routes.reports import CSV_HEADER


def _seed_stats(client, club):
    headers = club['prezes']['headers']
    client.post(f'/api/statystyki/{club["gracz15"]["id"]}',
                json={'sezon': '2024/25', 'strzeloneBramki': 6}, headers=headers)
    client.post(f'/api/statystyki/{club["gracz17"]["id"]}',
                json={'sezon': '2023/24', 'zolteKartki': 2}, headers=headers)


def test_players_report_json(client, club):
    _seed_stats(client, club)
    res = client.get('/api/reports/players', headers=club['prezes']['headers'])
    assert res.status_code == 200
    data = res.get_json()
    assert data['format'] == 'json'
    assert data['sezon'] == 'wszystkie sezony'
    assert data['total'] == 3
    by_email = {row['email']: row for row in data['data']}
    assert by_email['gracz15@klub.pl']['statystyki']['strzeloneBramki'] == 6
    assert by_email['gracz15b@klub.pl']['statystyki'] is None


def test_players_report_season_filter(client, club):
    _seed_stats(client, club)
    res = client.get('/api/reports/players?sezon=2024/25', headers=club['prezes']['headers'])
    data = res.get_json()
    assert data['sezon'] == '2024/25'
    by_email = {row['email']: row for row in data['data']}
    assert by_email['gracz17@klub.pl']['statystyki'] is None


def test_players_report_csv(client, club):
    _seed_stats(client, club)
    res = client.get('/api/reports/players?format=csv', headers=club['prezes']['headers'])
    assert res.status_code == 200
    assert res.mimetype == 'text/csv'
    assert 'attachment' in res.headers['Content-Disposition']

    rows = list(csv.reader(io.StringIO(res.get_data(as_text=True))))
    assert rows[0] == CSV_HEADER
    assert len(rows) == 4
    goals = {row[1]: row[13] for row in rows[1:]}
    assert goals['gracz15@klub.pl'] == '6'
    assert goals['gracz15b@klub.pl'] == ''


def test_category_and_position_reports(client, club):
    headers = club['prezes']['headers']
    res = client.get('/api/reports/category/u15', headers=headers)
    data = res.get_json()
    assert data['category'] == 'U15'
    assert {row['email'] for row in data['data']} == {'gracz15@klub.pl', 'gracz15b@klub.pl'}

    res = client.get('/api/reports/position/OBRONCA', headers=headers)
    assert [row['email'] for row in res.get_json()['data']] == ['gracz17@klub.pl']

    assert client.get('/api/reports/category/U99', headers=headers).status_code == 400
    assert client.get('/api/reports/position/LIBERO', headers=headers).status_code == 400


def test_unknown_format_rejected(client, club):
    res = client.get('/api/reports/players?format=xml', headers=club['prezes']['headers'])
    assert res.status_code == 400


def test_reports_are_president_only(client, club):
    assert client.get('/api/reports/players', headers=club['trener15']['headers']).status_code == 403
    assert client.get('/api/reports/players', headers=club['gracz15']['headers']).status_code == 403
