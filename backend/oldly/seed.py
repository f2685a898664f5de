"""Demo catalog used by `flask db-reset`."""

import secrets

from oldly.models import Album, Artist, Card, Deck, User, UserDeck

SONGS_80S = [
    ('Soda Stereo', 'De música ligera', 'Canción Animal', 1990, 'medium'),
    ('Charly García', 'Demoliendo hoteles', 'Piano Bar', 1984, 'medium'),
    ('Los Abuelos de la Nada', 'Mil horas', 'Vasos y besos', 1983, 'easy'),
    ('Fito Páez', 'Alarma entre los ángeles', 'Giros', 1985, 'hard'),
    ('Sumo', 'Divididos por la felicidad', 'Divididos por la felicidad', 1985, 'hard'),
    ('Patricio Rey y sus Redonditos de Ricota', 'Ji ji ji', 'Oktubre', 1986, 'medium'),
    ('Enanitos Verdes', 'La muralla verde', 'Contrarreloj', 1986, 'easy'),
    ('Soda Stereo', 'Persiana americana', 'Signos', 1986, 'medium'),
    ('Virus', 'Una luna de miel en la mano', 'Locura', 1985, 'medium'),
    ('Fito Páez', 'Mariposa Tecknicolor', 'Circo Beat', 1994, 'easy'),
]

USERS = [
    ('ana@oldly.test', 'Ana', 'García'),
    ('bruno@oldly.test', 'Bruno', 'Pérez'),
    ('carla@oldly.test', 'Carla', 'López'),
]


def seed_catalog(session, password='password'):
    deck = Deck(
        title='Oldly Fun 80s',
        description='Los mejores hits de los años 80.',
        theme='80s',
        active=True,
    )
    session.add(deck)

    artists = {}
    for artist_name, song, album_title, year, difficulty in SONGS_80S:
        artist = artists.get(artist_name)
        if artist is None:
            artist = artists[artist_name] = Artist(name=artist_name, country='Argentina')
            session.add(artist)
        album = Album(title=album_title, release_year=year, artist=artist)
        session.add(album)
        session.add(Card(
            deck=deck,
            artist=artist,
            album=album,
            song_name=song,
            difficulty=difficulty,
            qr_token=secrets.token_hex(8).upper(),
        ))

    for email, firstname, lastname in USERS:
        user = User(email=email, firstname=firstname, lastname=lastname)
        user.set_password(password)
        session.add(user)
        session.flush()
        session.add(UserDeck(user_id=user.id, deck_id=deck.id))

    session.commit()
    return deck
