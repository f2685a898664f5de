"""Game session lifecycle: start, rounds, finish and expiry.

The manager owns every read-modify-write on a session. Each operation runs
in one store transaction with the game row locked, so a round is either
fully recorded (rows, participant totals, game totals) or not at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from oldly import db
from oldly.models import Game, GameParticipant, GameParticipantRound, GameRound, Ranking, utcnow
from .errors import (
    AccessDenied, NotFound, StateConflict, ValidationError, card_already_played,
)
from .modes import (
    CompetitiveRound, ScoreRound, SessionMode, SimpleRound, TurnRound, check_submission,
)
from .scoring import CardAnswer, RoundScore, SelfReport, score_guess, score_self_report
from .store import Catalog, SessionStore
from .turns import current_turn_index

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY = timedelta(hours=1)


@dataclass
class RoundResult:
    score: RoundScore
    round_id: int
    participant_id: Optional[int] = None
    participant_name: Optional[str] = None

    def to_dict(self):
        payload = {'id': self.round_id}
        payload.update(self.score.to_dict())
        if self.participant_id is not None:
            payload['participant_id'] = self.participant_id
            payload['participant_name'] = self.participant_name
        return payload


@dataclass
class RoundOutcome:
    game: Game
    card: object
    results: List[RoundResult] = field(default_factory=list)

    @property
    def points(self):
        return sum(r.score.points for r in self.results)

    def to_dict(self):
        return {
            'card_id': self.card.id,
            'correct_answers': self.card.correct_answers(),
            'results': [r.to_dict() for r in self.results],
            'points': self.points,
            'game': self.game.to_dict(),
        }


@dataclass
class FinishOutcome:
    game: Game
    ranking: Ranking

    def to_dict(self):
        return {
            'game': self.game.to_dict(include_rounds=True),
            'ranking': self.ranking.to_dict(),
        }


class GameSessionManager:
    def __init__(
        self,
        store: SessionStore,
        catalog: Catalog,
        clock: Callable = utcnow,
        expiry: timedelta = DEFAULT_EXPIRY,
        max_participants: int = 8,
        name_max_len: int = 80,
    ):
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.expiry = expiry
        self.max_participants = max_participants
        self.name_max_len = name_max_len

    # ----- start -------------------------------------------------------

    def start_session(self, user_id, deck_id, mode, participants=None) -> Game:
        mode = SessionMode.parse(mode)
        names = self._validate_participants(mode, participants or [])

        if not self.catalog.has_deck_access(user_id, deck_id):
            raise AccessDenied('DECK_ACCESS_DENIED', 'You do not have access to this deck', {'deck_id': deck_id})
        if self.catalog.get_active_deck(deck_id) is None:
            raise NotFound('INVALID_DECK', 'Deck not found', {'deck_id': deck_id})
        if self.catalog.card_count(deck_id) < 1:
            raise ValidationError('NO_CARDS_IN_DECK', 'This deck has no cards', {'deck_id': deck_id})

        now = self.clock()
        with self.store.transaction():
            if not self.catalog.has_deck_access(user_id, deck_id, lock=True):
                raise AccessDenied('DECK_ACCESS_DENIED', 'You do not have access to this deck', {'deck_id': deck_id})
            existing = self.store.find_started_game(user_id, deck_id, lock=True)
            if existing is not None:
                if not self._is_stale(existing, now):
                    raise self._active_game_exists(existing)
                self._expire(existing, now)
                self.store.flush()

            game = self.store.add(Game(
                user_id=user_id,
                deck_id=deck_id,
                mode=mode.value,
                status='started',
                total_points=0,
                total_rounds=0,
                started_at=now,
            ))
            try:
                self.store.flush()
            except IntegrityError:
                # another start for this (user, deck) committed first
                self.store.rollback()
                raise self._active_game_exists(self.store.find_started_game(user_id, deck_id))
            for position, name in enumerate(names):
                self.store.add(GameParticipant(
                    game_id=game.id,
                    name=name,
                    total_points=0,
                    total_rounds=0,
                    turn_order=position if mode.ordered_turns else 0,
                ))
        logger.info(f"[game-start] game={game.id} user={user_id} deck={deck_id} mode={mode.value} participants={len(names)}")
        return game

    def _active_game_exists(self, existing):
        details = {'game_id': existing.id} if existing is not None else {}
        return StateConflict('ACTIVE_GAME_EXISTS', 'There is already an active game for this deck', details)

    def _validate_participants(self, mode, participants):
        if not mode.has_participants:
            return []
        if not participants:
            raise ValidationError('NO_PARTICIPANTS', 'At least one participant is required')
        if len(participants) > self.max_participants:
            raise ValidationError(
                'TOO_MANY_PARTICIPANTS',
                f'At most {self.max_participants} participants are allowed',
                {'max_participants': self.max_participants},
            )
        names = []
        for entry in participants:
            name = entry.get('name') if isinstance(entry, dict) else entry
            name = name.strip() if isinstance(name, str) else ''
            if not name or len(name) > self.name_max_len:
                raise ValidationError(
                    'INVALID_PARTICIPANT_NAME',
                    f'Participant names must be between 1 and {self.name_max_len} characters',
                )
            names.append(name)
        folded = [n.casefold() for n in names]
        if len(set(folded)) != len(folded):
            raise ValidationError('DUPLICATE_PARTICIPANT_NAMES', 'Participant names must be unique')
        return names

    # ----- rounds ------------------------------------------------------

    def submit_round(self, game_id, user_id, submission) -> RoundOutcome:
        self._expire_if_stale(game_id, user_id)
        now = self.clock()
        with self.store.transaction():
            game = self._owned_game(game_id, user_id, lock=True)
            self._require_started(game)
            check_submission(SessionMode(game.mode), submission)
            handler = self._handlers[type(submission)]
            outcome = handler(self, game, submission, now)
        logger.info(
            f"[round] game={game.id} mode={game.mode} card={outcome.card.id} "
            f"points={outcome.points} total_points={game.total_points} total_rounds={game.total_rounds}"
        )
        return outcome

    def submit_turn_round(self, game_id, user_id, submission: TurnRound) -> RoundOutcome:
        return self.submit_round(game_id, user_id, submission)

    def _apply_simple_round(self, game, submission: SimpleRound, now) -> RoundOutcome:
        card = self._card_for(game, submission.card_id)
        if self.store.game_round_exists(game.id, card.id):
            raise card_already_played(card.id)
        score = score_guess(CardAnswer.from_card(card), submission.guess)
        row = GameRound(
            game_id=game.id,
            card_id=card.id,
            song_correct=score.song_correct,
            artist_correct=score.artist_correct,
            album_correct=score.album_correct,
            points=score.points,
            played_at=now,
        )
        self.store.add(row)
        self._flush_rounds(card.id)
        game.total_points += score.points
        game.total_rounds += 1
        return RoundOutcome(game, card, [RoundResult(score, row.id)])

    def _apply_score_round(self, game, submission: ScoreRound, now) -> RoundOutcome:
        entries = [(a.participant_id, a.guess) for a in submission.answers]
        return self._apply_participant_rounds(game, submission.card_id, entries, score_guess, now)

    def _apply_competitive_round(self, game, submission: CompetitiveRound, now) -> RoundOutcome:
        entries = [(a.participant_id, a.report) for a in submission.answers]
        return self._apply_participant_rounds(game, submission.card_id, entries, score_self_report, now)

    def _apply_turn_round(self, game, submission: TurnRound, now) -> RoundOutcome:
        participants = self.store.participants(game.id, lock=True)
        if submission.participant_id not in {p.id for p in participants}:
            raise NotFound(
                'INVALID_PARTICIPANTS',
                'Participant does not belong to this game',
                {'participant_ids': [submission.participant_id]},
            )
        expected = participants[current_turn_index(game.total_rounds, len(participants))]
        if expected.id != submission.participant_id:
            logger.info(f"[wrong-turn] game={game.id} got={submission.participant_id} expected={expected.id}")
            raise StateConflict(
                'WRONG_TURN',
                f"It is {expected.name}'s turn",
                {'expected_participant_id': expected.id, 'expected_participant_name': expected.name},
            )
        return self._apply_participant_rounds(
            game, submission.card_id, [(submission.participant_id, submission.report)],
            score_self_report, now, participants=participants,
        )

    def _apply_participant_rounds(self, game, card_id, entries, scorer, now, participants=None) -> RoundOutcome:
        card = self._card_for(game, card_id)
        if not entries:
            raise ValidationError('NO_ANSWERS', 'At least one participant answer is required')
        ids = [pid for pid, _ in entries]
        if len(set(ids)) != len(ids):
            raise ValidationError('DUPLICATE_PARTICIPANT_ANSWERS', 'Each participant may answer only once per card')

        if participants is None:
            participants = self.store.participants(game.id, lock=True)
        by_id = {p.id: p for p in participants}
        unknown = [pid for pid in ids if pid not in by_id]
        if unknown:
            raise NotFound(
                'INVALID_PARTICIPANTS',
                'Some participants do not belong to this game',
                {'participant_ids': unknown},
            )
        already = self.store.participants_who_played(ids, card.id)
        if already:
            raise card_already_played(card.id, already)

        answer = CardAnswer.from_card(card)
        scored = []
        for pid, answer_input in entries:
            score = scorer(answer, answer_input)
            row = self.store.add(GameParticipantRound(
                participant_id=pid,
                card_id=card.id,
                song_correct=score.song_correct,
                artist_correct=score.artist_correct,
                album_correct=score.album_correct,
                points=score.points,
                played_at=now,
            ))
            participant = by_id[pid]
            participant.total_points += score.points
            participant.total_rounds += 1
            scored.append((participant, score, row))
        self._flush_rounds(card.id)

        game.total_points += sum(score.points for _, score, _ in scored)
        game.total_rounds += 1
        results = [RoundResult(score, row.id, p.id, p.name) for p, score, row in scored]
        return RoundOutcome(game, card, results)

    _handlers = {
        SimpleRound: _apply_simple_round,
        ScoreRound: _apply_score_round,
        CompetitiveRound: _apply_competitive_round,
        TurnRound: _apply_turn_round,
    }

    def _flush_rounds(self, card_id):
        try:
            self.store.flush()
        except IntegrityError:
            # a concurrent submission won the unique (game|participant, card) race
            raise card_already_played(card_id)

    def _card_for(self, game, card_id):
        card = self.catalog.get_card(card_id)
        if card is None:
            raise NotFound('CARD_NOT_FOUND', 'Card not found', {'card_id': card_id})
        if card.deck_id != game.deck_id:
            raise ValidationError('CARD_NOT_IN_DECK', 'This card does not belong to the game deck', {'card_id': card_id})
        return card

    # ----- finish ------------------------------------------------------

    def finish_session(self, game_id, user_id) -> FinishOutcome:
        self._expire_if_stale(game_id, user_id)
        now = self.clock()
        with self.store.transaction():
            # grant row before game row, the same order start_session locks in
            deck_id = self._owned_game(game_id, user_id).deck_id
            self.catalog.has_deck_access(user_id, deck_id, lock=True)
            game = self._owned_game(game_id, user_id, lock=True)
            self._require_started(game)
            game.status = 'finished'
            game.ended_at = now

            ranking = self.store.get_ranking(user_id, game.deck_id, lock=True)
            if ranking is None:
                ranking = self.store.add(Ranking(
                    user_id=user_id,
                    deck_id=game.deck_id,
                    points_total=game.total_points,
                    games_played=1,
                    last_played_at=now,
                ))
            else:
                ranking.points_total += game.total_points
                ranking.games_played += 1
                ranking.last_played_at = now
        logger.info(
            f"[finish] game={game.id} user={user_id} deck={game.deck_id} points={game.total_points} "
            f"ranking_points={ranking.points_total} games_played={ranking.games_played}"
        )
        return FinishOutcome(game, ranking)

    # ----- reads -------------------------------------------------------

    def get_session_state(self, game_id, user_id) -> Game:
        return self._expire_if_stale(game_id, user_id)

    def get_active_session_for_deck(self, user_id, deck_id) -> Game:
        now = self.clock()
        with self.store.transaction():
            game = self.store.find_started_game(user_id, deck_id, lock=True)
            if game is not None and self._is_stale(game, now):
                self._expire(game, now)
                game = None
        if game is None:
            raise NotFound('NO_ACTIVE_GAME', 'No active game for this deck', {'deck_id': deck_id})
        return game

    def preview_card_score(self, user_id, card_id, report: SelfReport):
        """Points a self-report would earn on a card, without touching any session."""
        card = self.catalog.get_card(card_id)
        if card is None:
            raise NotFound('CARD_NOT_FOUND', 'Card not found', {'card_id': card_id})
        if not self.catalog.has_deck_access(user_id, card.deck_id):
            raise AccessDenied('DECK_ACCESS_DENIED', 'You do not have access to this deck', {'deck_id': card.deck_id})
        return card, score_self_report(CardAnswer.from_card(card), report)

    # ----- expiry ------------------------------------------------------

    def expire_stale_sessions(self) -> int:
        now = self.clock()
        with self.store.transaction():
            stale = self.store.started_games_before(now - self.expiry)
            for game in stale:
                self._expire(game, now)
        return len(stale)

    def _is_stale(self, game, now):
        return game.status == 'started' and now - game.started_at >= self.expiry

    def _expire(self, game, now):
        game.status = 'expired'
        game.ended_at = now
        logger.info(f"[expire] game={game.id} user={game.user_id} deck={game.deck_id} started_at={game.started_at}")

    def _expire_if_stale(self, game_id, user_id) -> Game:
        """Commit the expiry of a timed-out game before the caller acts on it."""
        now = self.clock()
        with self.store.transaction():
            game = self._owned_game(game_id, user_id, lock=True)
            if self._is_stale(game, now):
                self._expire(game, now)
        return game

    def _owned_game(self, game_id, user_id, lock=False):
        game = self.store.get_game(game_id, lock=lock)
        if game is None or game.user_id != user_id:
            raise NotFound('GAME_NOT_FOUND', 'Game not found', {'game_id': game_id})
        return game

    def _require_started(self, game):
        if game.status != 'started':
            raise StateConflict(
                'GAME_NOT_ACTIVE',
                f'Game is already {game.status}',
                {'game_id': game.id, 'status': game.status},
            )


def build_manager(session=None, clock: Callable = utcnow) -> GameSessionManager:
    """Manager bound to the app's database session and configuration."""
    session = session or db.session
    cfg = current_app.config
    return GameSessionManager(
        SessionStore(session),
        Catalog(session),
        clock=clock,
        expiry=timedelta(seconds=int(cfg.get('GAME_EXPIRY_SEC', 3600))),
        max_participants=int(cfg.get('MAX_PARTICIPANTS', 8)),
        name_max_len=int(cfg.get('PARTICIPANT_NAME_MAX_LEN', 80)),
    )
