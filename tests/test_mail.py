"""Tests for role-restricted mail."""
import pytest

from klub import mailer

SUBJECT = 'Zmiana godziny'
BODY = '<p>Trening przesunięty na 18:00.</p>'


def _send(client, headers, to, subject=SUBJECT, html=BODY):
    return client.post('/api/mail/send', json={'to': to, 'subject': subject, 'html': html},
                       headers=headers)


def test_player_mails_own_coach_and_president(client, club, outbox):
    res = _send(client, club['gracz15']['headers'], [club['trener15']['id'], club['prezes']['id']])
    assert res.status_code == 200
    data = res.get_json()
    assert data['sentTo'] == 2
    assert {r['email'] for r in data['recipients']} == {'trener15@klub.pl', 'prezes@klub.pl'}
    assert len(outbox) == 1
    assert outbox[0]['Subject'] == SUBJECT


def test_players_cannot_mail_players(client, club, outbox):
    res = _send(client, club['gracz15']['headers'], [club['gracz15b']['id']])
    assert res.status_code == 403
    assert res.get_json()['message'] == 'Zawodnicy nie mogą wysyłać maili między sobą'
    assert outbox == []


def test_player_cannot_mail_other_category_coach(client, club):
    res = _send(client, club['gracz15']['headers'], [club['trener17']['id']])
    assert res.status_code == 403


def test_coach_recipient_rules(client, club):
    headers = club['trener15']['headers']
    assert _send(client, headers, [club['gracz15']['id'], club['trener17']['id']]).status_code == 200
    assert _send(client, headers, [club['trener15']['id']]).status_code == 200
    assert _send(client, headers, [club['gracz17']['id']]).status_code == 403


def test_president_mails_anyone(client, club):
    res = _send(client, club['prezes']['headers'], [club['gracz17']['id'], club['gracz15']['id']])
    assert res.status_code == 200
    assert res.get_json()['sentTo'] == 2


def test_send_validation(client, club):
    headers = club['prezes']['headers']
    assert _send(client, headers, []).status_code == 400
    assert _send(client, headers, [club['gracz15']['id']], subject='Hej').status_code == 400
    assert _send(client, headers, [club['gracz15']['id']], html='krótko').status_code == 400
    assert _send(client, headers, [999]).status_code == 404
    assert _send(client, {}, [club['gracz15']['id']]).status_code == 401


def test_send_category(client, club, outbox):
    res = client.post('/api/mail/send-category', json={
        'category': 'U15', 'subject': SUBJECT, 'html': BODY,
    }, headers=club['trener15']['headers'])
    assert res.status_code == 200
    assert res.get_json()['sentTo'] == 3
    assert res.get_json()['category'] == 'U15'
    assert len(outbox) == 1

    res = client.post('/api/mail/send-category', json={
        'category': 'U17', 'subject': SUBJECT, 'html': BODY,
    }, headers=club['trener15']['headers'])
    assert res.status_code == 403

    res = client.post('/api/mail/send-category', json={
        'category': 'U15', 'subject': SUBJECT, 'html': BODY,
    }, headers=club['gracz15']['headers'])
    assert res.status_code == 403

    res = client.post('/api/mail/send-category', json={
        'category': 'U9', 'subject': SUBJECT, 'html': BODY,
    }, headers=club['prezes']['headers'])
    assert res.status_code == 400


def test_transport_failure_returns_bad_gateway(client, club, monkeypatch):
    def _fail(*args, **kwargs):
        raise mailer.MailError('SMTP: problem z połączeniem')

    monkeypatch.setattr(mailer, 'send_mail', _fail)
    res = _send(client, club['prezes']['headers'], [club['gracz15']['id']])
    assert res.status_code == 502


def test_send_mail_without_smtp_host_raises(app):
    app.config['MAIL_SUPPRESS_SEND'] = False
    app.config['SMTP_HOST'] = ''
    with pytest.raises(mailer.MailError):
        mailer.send_mail('ktos@klub.pl', SUBJECT, BODY)


def test_send_mail_deduplicates_recipients(app, outbox):
    msg = mailer.send_mail(['A@klub.pl', 'a@klub.pl', ' ', 'b@klub.pl'], SUBJECT, BODY)
    assert msg['To'] == 'A@klub.pl, b@klub.pl'
    assert outbox == [msg]


def test_out_of_range_recipient_id_rejected(client, club, outbox):
    res = _send(client, club['prezes']['headers'], [99999999999999999999])
    assert res.status_code == 400
    assert outbox == []
