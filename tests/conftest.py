import pytest
from werkzeug.security import generate_password_hash
from klub.app import create_app, db
from klub.models import User

PASSWORD = 'haslo12345'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    """Messages captured by the suppressed mailer."""
    return app.extensions.setdefault('mail_outbox', [])


@pytest.fixture
def make_user(app):
    """Insert a user directly; returns the User row."""
    def _make(email, rola='ZAWODNIK', kategoria='BRAK', **fields):
        user = User(
            email=email,
            password_hash=generate_password_hash(PASSWORD),
            rola=rola,
            kategoria=kategoria,
            **fields,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def login(client):
    """Log in and return bearer headers."""
    def _login(email, password=PASSWORD):
        res = client.post('/api/auth/logowanie', json={'email': email, 'haslo': password})
        assert res.status_code == 200, res.get_json()
        return {'Authorization': f'Bearer {res.get_json()["token"]}'}
    return _login


@pytest.fixture
def club(make_user, login):
    """A small club: president, coaches for U15/U17 and a few players."""
    members = {
        'prezes': make_user('prezes@klub.pl', rola='PREZES', imie='Piotr'),
        'trener15': make_user('trener15@klub.pl', rola='TRENER', kategoria='U15'),
        'trener17': make_user('trener17@klub.pl', rola='TRENER', kategoria='U17'),
        'gracz15': make_user('gracz15@klub.pl', kategoria='U15', pozycja='NAPASTNIK',
                             imie='Jan', nazwisko='Nowak'),
        'gracz15b': make_user('gracz15b@klub.pl', kategoria='U15', pozycja='BRAMKARZ',
                              imie='Adam', nazwisko='Kowal'),
        'gracz17': make_user('gracz17@klub.pl', kategoria='U17', pozycja='OBRONCA',
                             imie='Ola', nazwisko='Lis'),
    }
    return {
        name: {'id': user.id, 'email': user.email, 'headers': login(user.email)}
        for name, user in members.items()
    }
