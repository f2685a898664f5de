from oldly import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
from oldly.services.games.turns import current_turn_index, next_turn_index


def utcnow():
    """Naive UTC timestamp; SQLite drops tzinfo so the column stores naive values everywhere."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    firstname = db.Column(db.String(60), nullable=False)
    lastname = db.Column(db.String(60), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    avatar_url = db.Column(db.String(512), nullable=True)
    # UserMixin.is_active is overridden by this column
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstname': self.firstname,
            'lastname': self.lastname,
            'avatar_url': self.avatar_url,
        }

    def public_dict(self):
        return {
            'id': self.id,
            'firstname': self.firstname,
            'lastname': self.lastname,
            'avatar_url': self.avatar_url,
        }


class Deck(db.Model):
    __tablename__ = 'deck'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    theme = db.Column(db.String(64), nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    cards = db.relationship('Card', back_populates='deck', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'theme': self.theme,
        }


class UserDeck(db.Model):
    """Access grant: a user may play a deck once they own it."""
    __tablename__ = 'user_deck'
    __table_args__ = (db.UniqueConstraint('user_id', 'deck_id', name='uq_user_deck'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('deck.id'), nullable=False, index=True)
    granted_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Artist(db.Model):
    __tablename__ = 'artist'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    country = db.Column(db.String(64), nullable=True)


class Album(db.Model):
    __tablename__ = 'album'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    release_year = db.Column(db.Integer, nullable=True)
    artist_id = db.Column(db.Integer, db.ForeignKey('artist.id'), nullable=False)
    artist = db.relationship('Artist')


class Card(db.Model):
    __tablename__ = 'card'
    id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('deck.id'), nullable=False, index=True)
    artist_id = db.Column(db.Integer, db.ForeignKey('artist.id'), nullable=False)
    album_id = db.Column(db.Integer, db.ForeignKey('album.id'), nullable=True)
    song_name = db.Column(db.String(160), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False, default='medium')  # easy, medium, hard
    qr_token = db.Column(db.String(32), unique=True, nullable=True)
    deck = db.relationship('Deck', back_populates='cards')
    artist = db.relationship('Artist')
    album = db.relationship('Album')

    def correct_answers(self):
        return {
            'song': self.song_name,
            'artist': self.artist.name if self.artist else None,
            'album': self.album.title if self.album else None,
        }


class Game(db.Model):
    __tablename__ = 'game'
    __table_args__ = (
        # at most one started game per (user, deck)
        db.Index(
            'uq_game_started_user_deck', 'user_id', 'deck_id', unique=True,
            postgresql_where=db.text("status = 'started'"), sqlite_where=db.text("status = 'started'"),
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('deck.id'), nullable=False, index=True)
    mode = db.Column(db.String(32), nullable=False, default='simple')  # simple, score, competitive, competitive_turns
    status = db.Column(db.String(16), nullable=False, default='started', index=True)  # started, finished, expired
    total_points = db.Column(db.Integer, nullable=False, default=0)
    total_rounds = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    ended_at = db.Column(db.DateTime, nullable=True)
    deck = db.relationship('Deck')
    participants = db.relationship(
        'GameParticipant', back_populates='game',
        order_by=lambda: (GameParticipant.turn_order, GameParticipant.id),
    )
    rounds = db.relationship('GameRound', back_populates='game', order_by=lambda: (GameRound.played_at, GameRound.id))

    def current_turn(self):
        """Participant whose turn it is, derived from total_rounds. None outside competitive_turns."""
        if self.mode != 'competitive_turns' or not self.participants:
            return None
        return self.participants[current_turn_index(self.total_rounds, len(self.participants))]

    def next_turn(self):
        if self.mode != 'competitive_turns' or not self.participants:
            return None
        return self.participants[next_turn_index(self.total_rounds, len(self.participants))]

    def to_dict(self, include_rounds=False):
        payload = {
            'id': self.id,
            'mode': self.mode,
            'status': self.status,
            'total_points': self.total_points,
            'total_rounds': self.total_rounds,
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
            'deck': self.deck.to_dict() if self.deck else {'id': self.deck_id},
            'participants': [p.to_dict(include_rounds=include_rounds) for p in self.participants],
        }
        turn, upcoming = self.current_turn(), self.next_turn()
        payload['current_turn'] = {'participant_id': turn.id, 'name': turn.name} if turn else None
        payload['next_turn'] = {'participant_id': upcoming.id, 'name': upcoming.name} if upcoming else None
        if include_rounds:
            payload['rounds'] = [r.to_dict() for r in self.rounds]
        return payload


class GameParticipant(db.Model):
    __tablename__ = 'game_participant'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    name = db.Column(db.String(80), nullable=False)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    total_rounds = db.Column(db.Integer, nullable=False, default=0)
    turn_order = db.Column(db.Integer, nullable=False, default=0)
    game = db.relationship('Game', back_populates='participants')
    rounds = db.relationship('GameParticipantRound', back_populates='participant', order_by=lambda: (GameParticipantRound.played_at, GameParticipantRound.id))

    def to_dict(self, include_rounds=False):
        payload = {
            'id': self.id,
            'name': self.name,
            'total_points': self.total_points,
            'total_rounds': self.total_rounds,
            'turn_order': self.turn_order,
        }
        if include_rounds:
            payload['rounds'] = [r.to_dict() for r in self.rounds]
        return payload


class GameRound(db.Model):
    __tablename__ = 'game_round'
    __table_args__ = (db.UniqueConstraint('game_id', 'card_id', name='uq_game_round_card'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    card_id = db.Column(db.Integer, db.ForeignKey('card.id'), nullable=False)
    song_correct = db.Column(db.Boolean, nullable=False, default=False)
    artist_correct = db.Column(db.Boolean, nullable=False, default=False)
    album_correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, nullable=False, default=0)
    played_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    game = db.relationship('Game', back_populates='rounds')

    def to_dict(self):
        return {
            'id': self.id,
            'card_id': self.card_id,
            'song_correct': self.song_correct,
            'artist_correct': self.artist_correct,
            'album_correct': self.album_correct,
            'points': self.points,
            'played_at': _iso(self.played_at),
        }


class GameParticipantRound(db.Model):
    __tablename__ = 'game_participant_round'
    __table_args__ = (db.UniqueConstraint('participant_id', 'card_id', name='uq_participant_round_card'),)
    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('game_participant.id'), nullable=False, index=True)
    card_id = db.Column(db.Integer, db.ForeignKey('card.id'), nullable=False)
    song_correct = db.Column(db.Boolean, nullable=False, default=False)
    artist_correct = db.Column(db.Boolean, nullable=False, default=False)
    album_correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, nullable=False, default=0)
    played_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    participant = db.relationship('GameParticipant', back_populates='rounds')

    def to_dict(self):
        return {
            'id': self.id,
            'participant_id': self.participant_id,
            'card_id': self.card_id,
            'song_correct': self.song_correct,
            'artist_correct': self.artist_correct,
            'album_correct': self.album_correct,
            'points': self.points,
            'played_at': _iso(self.played_at),
        }


class Ranking(db.Model):
    __tablename__ = 'ranking'
    __table_args__ = (db.UniqueConstraint('user_id', 'deck_id', name='uq_ranking_user_deck'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('deck.id'), nullable=False, index=True)
    points_total = db.Column(db.Integer, nullable=False, default=0)
    games_played = db.Column(db.Integer, nullable=False, default=0)
    last_played_at = db.Column(db.DateTime, nullable=True)
    user = db.relationship('User')
    deck = db.relationship('Deck')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'deck_id': self.deck_id,
            'points_total': self.points_total,
            'games_played': self.games_played,
            'last_played_at': _iso(self.last_played_at),
        }
