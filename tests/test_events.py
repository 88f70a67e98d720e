"""Tests for events and training attendance."""
from datetime import timedelta

from klub.app import db
from klub.models import Event, EventParticipant
from klub.time_utils import utcnow_naive


def _when(days=1, hours=0):
    return (utcnow_naive().replace(microsecond=0) + timedelta(days=days, hours=hours)).isoformat()


def _create_event(client, headers, **overrides):
    data = {'tytul': 'Trening wtorkowy', 'typ': 'TRENING', 'data': _when()}
    data.update(overrides)
    res = client.post('/api/wydarzenia', json=data, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_coach_event_is_forced_to_own_category(client, club):
    event = _create_event(client, club['trener15']['headers'])
    assert event['kategoria'] == 'U15'
    assert event['utworzyl'] == club['trener15']['id']

    res = client.post('/api/wydarzenia', json={
        'tytul': 'Obcy', 'typ': 'TRENING', 'data': _when(), 'kategoria': 'U17',
    }, headers=club['trener15']['headers'])
    assert res.status_code == 403


def test_create_event_validation(client, club):
    headers = club['prezes']['headers']
    res = client.post('/api/wydarzenia', json={'tytul': 'Brak daty', 'typ': 'TRENING'},
                      headers=headers)
    assert res.status_code == 400
    res = client.post('/api/wydarzenia', json={
        'tytul': 'Zły typ', 'typ': 'PIKNIK', 'data': _when(),
    }, headers=headers)
    assert res.status_code == 400
    res = client.post('/api/wydarzenia', json={
        'tytul': 'Koniec przed startem', 'typ': 'SPARING',
        'data': _when(days=2), 'dataKonca': _when(days=1),
    }, headers=headers)
    assert res.status_code == 400


def test_players_cannot_create_events(client, club):
    res = client.post('/api/wydarzenia', json={
        'tytul': 'Mój trening', 'typ': 'TRENING', 'data': _when(),
    }, headers=club['gracz15']['headers'])
    assert res.status_code == 403


def test_event_visibility_by_category(client, club):
    _create_event(client, club['prezes']['headers'], tytul='U15', kategoria='U15')
    _create_event(client, club['prezes']['headers'], tytul='U17', kategoria='U17')
    _create_event(client, club['prezes']['headers'], tytul='Cały klub', typ='ZBIORKA')

    res = client.get('/api/wydarzenia', headers=club['gracz15']['headers'])
    titles = [event['tytul'] for event in res.get_json()]
    assert sorted(titles) == ['Cały klub', 'U15']
    assert all('uczestnicy' not in event for event in res.get_json())

    res = client.get('/api/wydarzenia', headers=club['prezes']['headers'])
    assert len(res.get_json()) == 3


def test_event_list_sorted_and_filtered(client, club):
    headers = club['prezes']['headers']
    _create_event(client, headers, tytul='Później', data=_when(days=5))
    _create_event(client, headers, tytul='Wcześniej', data=_when(days=1))
    _create_event(client, headers, tytul='Mecz', typ='MECZ_LIGOWY', data=_when(days=3))

    res = client.get('/api/wydarzenia', headers=headers)
    assert [e['tytul'] for e in res.get_json()] == ['Wcześniej', 'Mecz', 'Później']

    res = client.get('/api/wydarzenia?typ=mecz_ligowy', headers=headers)
    assert [e['tytul'] for e in res.get_json()] == ['Mecz']

    res = client.get(f'/api/wydarzenia?od={_when(days=2)}', headers=headers)
    assert [e['tytul'] for e in res.get_json()] == ['Mecz', 'Później']


def test_player_cannot_open_other_category_event(client, club):
    event = _create_event(client, club['trener17']['headers'])
    res = client.get(f'/api/wydarzenia/{event["id"]}', headers=club['gracz15']['headers'])
    assert res.status_code == 403
    res = client.get('/api/wydarzenia/9999', headers=club['gracz15']['headers'])
    assert res.status_code == 404


def test_rsvp_twice_keeps_one_entry(client, club):
    event = _create_event(client, club['trener15']['headers'])
    headers = club['gracz15']['headers']

    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': True}, headers=headers)
    assert res.status_code == 200
    assert res.get_json()['status'] == 'TAK'

    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': False}, headers=headers)
    assert res.status_code == 200
    assert res.get_json()['status'] == 'NIE'

    res = client.get(f'/api/wydarzenia/{event["id"]}/uczestnicy',
                     headers=club['trener15']['headers'])
    participants = res.get_json()
    assert len(participants) == 1
    assert participants[0]['zawodnik']['id'] == club['gracz15']['id']
    assert participants[0]['status'] == 'NIE'

    res = client.get(f'/api/wydarzenia/{event["id"]}', headers=headers)
    assert res.get_json()['mojStatus'] == 'NIE'
    assert EventParticipant.query.filter_by(event_id=event['id']).count() == 1


def test_rsvp_accepts_answer_string(client, club):
    event = _create_event(client, club['trener15']['headers'])
    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'odpowiedz': 'tak'}, headers=club['gracz15']['headers'])
    assert res.status_code == 200
    assert res.get_json() == {'message': 'Zapisano udział', 'status': 'TAK'}


def test_rsvp_on_match_is_rejected_without_mutation(client, club):
    event = _create_event(client, club['trener15']['headers'], typ='MECZ_LIGOWY')
    before = db.session.get(Event, event['id']).to_dict()

    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': True}, headers=club['gracz15']['headers'])
    assert res.status_code == 400

    db.session.expire_all()
    assert db.session.get(Event, event['id']).to_dict() == before
    assert EventParticipant.query.count() == 0


def test_rsvp_rules(client, club):
    event = _create_event(client, club['trener15']['headers'])
    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': 'tak'}, headers=club['gracz15']['headers'])
    assert res.status_code == 400
    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': True}, headers=club['gracz17']['headers'])
    assert res.status_code == 403
    res = client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                      json={'wezmieUdzial': True}, headers=club['trener15']['headers'])
    assert res.status_code == 403


def test_only_creator_or_president_edits(client, club):
    event = _create_event(client, club['trener15']['headers'])

    other_coach = client.post('/api/admin/uzytkownicy', json={
        'email': 'drugi15@klub.pl', 'rola': 'TRENER', 'kategoria': 'U15', 'haslo': 'haslo12345',
    }, headers=club['prezes']['headers'])
    assert other_coach.status_code == 201
    login = client.post('/api/auth/logowanie', json={
        'email': 'drugi15@klub.pl', 'haslo': 'haslo12345',
    })
    other_headers = {'Authorization': f'Bearer {login.get_json()["token"]}'}

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'tytul': 'Nie moje'},
                       headers=other_headers)
    assert res.status_code == 403

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'tytul': 'Zmieniony'},
                       headers=club['trener15']['headers'])
    assert res.status_code == 200
    assert res.get_json()['tytul'] == 'Zmieniony'

    res = client.delete(f'/api/wydarzenia/{event["id"]}', headers=other_headers)
    assert res.status_code == 403
    res = client.delete(f'/api/wydarzenia/{event["id"]}', headers=club['prezes']['headers'])
    assert res.status_code == 200


def test_moving_event_resets_reminder_flag(client, club):
    event = _create_event(client, club['prezes']['headers'])
    stored = db.session.get(Event, event['id'])
    stored.reminder_sent = True
    db.session.commit()

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'lokalizacja': 'Boisko B'},
                       headers=club['prezes']['headers'])
    assert res.get_json()['reminderSent'] is True

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'data': _when(days=4)},
                       headers=club['prezes']['headers'])
    assert res.status_code == 200
    assert res.get_json()['reminderSent'] is False


def test_changing_training_type_drops_attendance(client, club):
    event = _create_event(client, club['trener15']['headers'])
    client.post(f'/api/wydarzenia/{event["id"]}/udzial',
                json={'wezmieUdzial': True}, headers=club['gracz15']['headers'])

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'typ': 'SPARING'},
                       headers=club['trener15']['headers'])
    assert res.status_code == 200
    assert res.get_json()['uczestnicy'] == []


def test_participants_list_is_staff_only(client, club):
    event = _create_event(client, club['trener15']['headers'])
    res = client.get(f'/api/wydarzenia/{event["id"]}/uczestnicy',
                     headers=club['gracz15']['headers'])
    assert res.status_code == 403


def test_over_long_text_fields_are_rejected(client, club):
    headers = club['prezes']['headers']
    for field, max_len in (('tytul', 200), ('opis', 5000), ('lokalizacja', 300)):
        res = client.post('/api/wydarzenia', json={
            'tytul': 'Trening', 'typ': 'TRENING', 'data': _when(), field: 'x' * (max_len + 1),
        }, headers=headers)
        assert res.status_code == 400, field
    assert Event.query.count() == 0

    event = _create_event(client, headers, tytul='T' * 200, lokalizacja='L' * 300)
    assert event['tytul'] == 'T' * 200

    for field, max_len in (('tytul', 200), ('opis', 5000), ('lokalizacja', 300)):
        res = client.patch(f'/api/wydarzenia/{event["id"]}',
                           json={field: 'y' * (max_len + 1), 'typ': 'SPARING'}, headers=headers)
        assert res.status_code == 400, field
    stored = db.session.get(Event, event['id'])
    assert stored.tytul == 'T' * 200
    assert stored.lokalizacja == 'L' * 300
    assert stored.typ == 'TRENING'

    res = client.patch(f'/api/wydarzenia/{event["id"]}', json={'tytul': '   '}, headers=headers)
    assert res.status_code == 400


def test_out_of_range_event_id_is_not_found(client, club):
    headers = club['prezes']['headers']
    huge = 99999999999999999999
    assert client.get(f'/api/wydarzenia/{huge}', headers=headers).status_code == 404
    assert client.patch(f'/api/wydarzenia/{huge}', json={}, headers=headers).status_code == 404
    assert client.delete(f'/api/wydarzenia/{huge}', headers=headers).status_code == 404
    res = client.post(f'/api/wydarzenia/{huge}/udzial', json={'wezmieUdzial': True},
                      headers=club['gracz15']['headers'])
    assert res.status_code == 404
