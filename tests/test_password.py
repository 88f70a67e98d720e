"""Tests for password reset and change."""
from datetime import timedelta

from klub.app import db
from klub.models import User
from klub.time_utils import utcnow_naive


def test_forgot_password_unknown_email_is_silent(client, outbox):
    res = client.post('/api/password/forgot-password', json={'email': 'brak@klub.pl'})
    assert res.status_code == 200
    assert 'resetToken' not in res.get_json()
    assert outbox == []


def test_reset_flow(client, make_user, outbox):
    make_user('reset@klub.pl', imie='Ewa')
    res = client.post('/api/password/forgot-password', json={'email': 'reset@klub.pl'})
    assert res.status_code == 200
    token = res.get_json()['resetToken']
    assert len(outbox) == 1
    assert f'reset-password?token={token}' in outbox[0].get_body(('html',)).get_content()

    user = User.query.filter_by(email='reset@klub.pl').first()
    assert user.reset_token_hash and user.reset_token_hash != token

    res = client.post('/api/password/reset-password', json={
        'token': token, 'noweHaslo': 'noweHaslo123',
    })
    assert res.status_code == 200
    assert len(outbox) == 2

    res = client.post('/api/auth/logowanie', json={
        'email': 'reset@klub.pl', 'haslo': 'noweHaslo123',
    })
    assert res.status_code == 200

    res = client.post('/api/password/reset-password', json={
        'token': token, 'noweHaslo': 'inneHaslo123',
    })
    assert res.status_code == 400


def test_reset_with_expired_token(client, make_user):
    make_user('late@klub.pl')
    token = client.post('/api/password/forgot-password', json={
        'email': 'late@klub.pl',
    }).get_json()['resetToken']

    user = User.query.filter_by(email='late@klub.pl').first()
    user.reset_token_expires_at = utcnow_naive() - timedelta(minutes=1)
    db.session.commit()

    res = client.post('/api/password/reset-password', json={
        'token': token, 'noweHaslo': 'noweHaslo123',
    })
    assert res.status_code == 400
    assert res.get_json()['message'] == 'Token jest nieprawidłowy lub wygasł'


def test_reset_rejects_short_password(client):
    res = client.post('/api/password/reset-password', json={
        'token': 'x' * 64, 'noweHaslo': 'krotkie',
    })
    assert res.status_code == 400


def test_change_password(client, club):
    headers = club['gracz15']['headers']
    res = client.post('/api/password/change-password', json={
        'staroHaslo': 'zlehaslo99', 'noweHaslo': 'noweHaslo123',
    }, headers=headers)
    assert res.status_code == 401

    res = client.post('/api/password/change-password', json={
        'staroHaslo': 'haslo12345', 'noweHaslo': 'noweHaslo123',
    }, headers=headers)
    assert res.status_code == 200

    res = client.post('/api/auth/logowanie', json={
        'email': 'gracz15@klub.pl', 'haslo': 'noweHaslo123',
    })
    assert res.status_code == 200


def test_change_password_requires_login(client):
    res = client.post('/api/password/change-password', json={
        'staroHaslo': 'haslo12345', 'noweHaslo': 'noweHaslo123',
    })
    assert res.status_code == 401


def test_reset_mail_escapes_first_name(client, make_user, outbox):
    make_user('html@klub.pl', imie='<i>Ewa</i>')
    client.post('/api/password/forgot-password', json={'email': 'html@klub.pl'})
    html = outbox[0].get_body(('html',)).get_content()
    assert 'Cześć &lt;i&gt;Ewa&lt;/i&gt;!' in html
