"""Session modes and the round submission each one accepts.

A game's mode fixes exactly one submission type; handing the manager any
other type is rejected before anything is read from the store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .errors import ValidationError
from .scoring import Guess, SelfReport


class SessionMode(str, Enum):
    SIMPLE = 'simple'
    SCORE = 'score'
    COMPETITIVE = 'competitive'
    COMPETITIVE_TURNS = 'competitive_turns'

    @classmethod
    def parse(cls, value) -> 'SessionMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(value or cls.SIMPLE.value)
        except ValueError:
            raise ValidationError('INVALID_MODE', f'Unknown game mode: {value}') from None

    @property
    def has_participants(self) -> bool:
        return self is not SessionMode.SIMPLE

    @property
    def ordered_turns(self) -> bool:
        return self is SessionMode.COMPETITIVE_TURNS


@dataclass(frozen=True)
class SimpleRound:
    card_id: int
    guess: Guess


@dataclass(frozen=True)
class ParticipantGuess:
    participant_id: int
    guess: Guess


@dataclass(frozen=True)
class ScoreRound:
    card_id: int
    answers: Tuple[ParticipantGuess, ...]


@dataclass(frozen=True)
class ParticipantReport:
    participant_id: int
    report: SelfReport


@dataclass(frozen=True)
class CompetitiveRound:
    card_id: int
    answers: Tuple[ParticipantReport, ...]


@dataclass(frozen=True)
class TurnRound:
    card_id: int
    participant_id: int
    report: SelfReport


SUBMISSION_FOR_MODE = {
    SessionMode.SIMPLE: SimpleRound,
    SessionMode.SCORE: ScoreRound,
    SessionMode.COMPETITIVE: CompetitiveRound,
    SessionMode.COMPETITIVE_TURNS: TurnRound,
}


def check_submission(mode: SessionMode, submission) -> None:
    expected = SUBMISSION_FOR_MODE[mode]
    if not isinstance(submission, expected):
        raise ValidationError(
            'INVALID_MODE',
            f'This round type is not valid for a {mode.value} game',
            {'mode': mode.value},
        )
