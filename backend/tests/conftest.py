import os
import sys
from datetime import datetime, timedelta
import pytest

# Ensure the backend root (containing the `oldly` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from oldly import create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    GAME_EXPIRY_SEC = 3600
    MAX_PARTICIPANTS = 8
    PARTICIPANT_NAME_MAX_LEN = 80
    RANKINGS_DEFAULT_LIMIT = 100
    CORS_ORIGINS = []
    LOG_LEVEL = 'DEBUG'


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import oldly.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def catalog(flask_app):
    """One deck with an album-less medium card, a hard card and an easy card; one user with access."""
    from oldly.models import Album, Artist, Card, Deck, User, UserDeck

    deck = Deck(title='Oldly Fun 80s', theme='80s', active=True)
    other_deck = Deck(title='Movies', theme='movies', active=True)
    empty_deck = Deck(title='Empty', theme='none', active=True)
    inactive_deck = Deck(title='Retired', theme='old', active=False)
    soda = Artist(name='Soda Stereo', country='Argentina')
    fito = Artist(name='Fito Páez', country='Argentina')
    abuelos = Artist(name='Los Abuelos de la Nada', country='Argentina')
    giros = Album(title='Giros', release_year=1985, artist=fito)
    vasos = Album(title='Vasos y besos', release_year=1983, artist=abuelos)
    db.session.add_all([deck, other_deck, empty_deck, inactive_deck, soda, fito, abuelos, giros, vasos])

    no_album = Card(deck=deck, artist=soda, album=None, song_name='De música ligera', difficulty='medium')
    hard = Card(deck=deck, artist=fito, album=giros, song_name='Alarma entre los ángeles', difficulty='hard')
    easy = Card(deck=deck, artist=abuelos, album=vasos, song_name='Mil horas', difficulty='easy')
    foreign = Card(deck=other_deck, artist=soda, album=None, song_name='Persiana americana', difficulty='easy')
    retired = Card(deck=inactive_deck, artist=soda, album=None, song_name='Signos', difficulty='easy')
    db.session.add_all([no_album, hard, easy, foreign, retired])

    user = User(email='ana@oldly.test', firstname='Ana', lastname='García')
    user.set_password('password')
    stranger = User(email='bruno@oldly.test', firstname='Bruno', lastname='Pérez')
    stranger.set_password('password')
    db.session.add_all([user, stranger])
    db.session.flush()
    for d in (deck, other_deck, empty_deck, inactive_deck):
        db.session.add(UserDeck(user_id=user.id, deck_id=d.id))
    db.session.commit()

    return {
        'user_id': user.id,
        'stranger_id': stranger.id,
        'deck_id': deck.id,
        'other_deck_id': other_deck.id,
        'empty_deck_id': empty_deck.id,
        'inactive_deck_id': inactive_deck.id,
        'no_album_card_id': no_album.id,
        'hard_card_id': hard.id,
        'easy_card_id': easy.id,
        'foreign_card_id': foreign.id,
    }


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def manager(flask_app, clock):
    from oldly.services.games.manager import build_manager
    return build_manager(clock=clock)


@pytest.fixture()
def auth_client(client, catalog):
    res = client.post('/login', json={'email': 'ana@oldly.test', 'password': 'password'})
    assert res.status_code == 200
    return client
