"""Repository access for sessions and the card catalog.

Both classes take an explicit SQLAlchemy session so the manager never
reaches for ``db.session`` itself. Reads made with ``lock=True`` use
``SELECT ... FOR UPDATE`` so concurrent round submissions against the
same game serialize on the game and participant rows (SQLite ignores the
clause and serializes on its database lock instead).
"""

import logging
from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from oldly.models import (
    Card, Deck, Game, GameParticipant, GameParticipantRound, GameRound, Ranking, UserDeck,
)
from .errors import GameError, InternalError

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, session):
        self.session = session

    @contextmanager
    def transaction(self):
        """Commit everything written inside the block, or nothing."""
        try:
            yield self
            self.session.commit()
        except GameError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception('[store] transaction failed')
            raise InternalError('STORE_FAILURE', 'Internal server error') from exc
        except Exception:
            self.session.rollback()
            raise

    def rollback(self):
        self.session.rollback()

    def add(self, obj):
        self.session.add(obj)
        return obj

    def flush(self):
        self.session.flush()

    def get_game(self, game_id, lock=False):
        query = self.session.query(Game).filter(Game.id == game_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def find_started_game(self, user_id, deck_id, lock=False):
        query = (
            self.session.query(Game)
            .filter_by(user_id=user_id, deck_id=deck_id, status='started')
            .order_by(Game.started_at.desc(), Game.id.desc())
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def started_games_before(self, cutoff):
        return (
            self.session.query(Game)
            .filter(Game.status == 'started', Game.started_at <= cutoff)
            .with_for_update()
            .all()
        )

    def participants(self, game_id, lock=False):
        query = (
            self.session.query(GameParticipant)
            .filter_by(game_id=game_id)
            .order_by(GameParticipant.turn_order, GameParticipant.id)
        )
        if lock:
            query = query.with_for_update()
        return query.all()

    def game_round_exists(self, game_id, card_id):
        return self.session.query(GameRound.id).filter_by(game_id=game_id, card_id=card_id).first() is not None

    def participants_who_played(self, participant_ids, card_id):
        rows = (
            self.session.query(GameParticipantRound.participant_id)
            .filter(
                GameParticipantRound.participant_id.in_(list(participant_ids)),
                GameParticipantRound.card_id == card_id,
            )
            .all()
        )
        return {row[0] for row in rows}

    def get_ranking(self, user_id, deck_id, lock=False):
        query = self.session.query(Ranking).filter_by(user_id=user_id, deck_id=deck_id)
        if lock:
            query = query.with_for_update()
        return query.first()


class Catalog:
    """Read-only lookups over decks, cards and access grants."""

    def __init__(self, session):
        self.session = session

    def has_deck_access(self, user_id, deck_id, lock=False):
        """With lock=True the grant row is held until commit; starts and finishes for one (user, deck) queue on it."""
        query = self.session.query(UserDeck.id).filter_by(user_id=user_id, deck_id=deck_id)
        if lock:
            query = query.with_for_update()
        return query.first() is not None

    def get_active_deck(self, deck_id):
        return self.session.query(Deck).filter_by(id=deck_id, active=True).first()

    def card_count(self, deck_id):
        return self.session.query(func.count(Card.id)).filter(Card.deck_id == deck_id).scalar() or 0

    def get_card(self, card_id):
        return (
            self.session.query(Card)
            .options(joinedload(Card.artist), joinedload(Card.album))
            .filter(Card.id == card_id)
            .first()
        )
