import re
import unicodedata
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

DIFFICULTY_MULTIPLIERS = {
    'easy': Decimal('1'),
    'medium': Decimal('1.5'),
    'hard': Decimal('2'),
}

_NON_WORD = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class Guess:
    song: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None


@dataclass(frozen=True)
class SelfReport:
    song_knew: bool = False
    artist_knew: bool = False
    album_knew: bool = False


@dataclass(frozen=True)
class CardAnswer:
    """The canonical fields of a card that a guess is compared against."""
    song: str
    artist: str
    album: Optional[str]
    difficulty: str

    @classmethod
    def from_card(cls, card) -> 'CardAnswer':
        return cls(
            song=card.song_name,
            artist=card.artist.name,
            album=card.album.title if card.album else None,
            difficulty=card.difficulty,
        )


@dataclass(frozen=True)
class RoundScore:
    song_correct: bool
    artist_correct: bool
    album_correct: bool
    base: int
    bonus: int
    points: int

    def to_dict(self):
        return {
            'song_correct': self.song_correct,
            'artist_correct': self.artist_correct,
            'album_correct': self.album_correct,
            'base_points': self.base,
            'bonus_points': self.bonus,
            'points': self.points,
        }


def normalize(value: Optional[str]) -> str:
    """Canonical comparison form of a title or name.

    Lowercase, accents folded, punctuation dropped and whitespace collapsed:
    "De Música  Ligera!!" -> "de musica ligera".
    """
    if not value:
        return ''
    # case-fold between decompositions: NFKD can yield capitals ("ℌ" -> "H")
    folded = unicodedata.normalize('NFKD', unicodedata.normalize('NFKD', value).casefold())
    folded = ''.join(ch for ch in folded if not unicodedata.combining(ch))
    folded = _NON_WORD.sub('', folded.strip())
    return _WHITESPACE.sub(' ', folded).strip()


def same_answer(guess: Optional[str], canonical: Optional[str]) -> bool:
    return normalize(guess) == normalize(canonical)


def multiplier_for(difficulty: str) -> Decimal:
    try:
        return DIFFICULTY_MULTIPLIERS[difficulty]
    except KeyError:
        raise ValueError(f'Unknown difficulty: {difficulty!r}') from None


def compute_points(song_correct: bool, artist_correct: bool, album_correct: bool, difficulty: str) -> RoundScore:
    """Apply the difficulty multiplier to one point per correct field.

    The bonus is whatever rounding the multiplied total adds over the base,
    so round(base * m) - base and not round(base * (m - 1)).
    """
    base = int(song_correct) + int(artist_correct) + int(album_correct)
    multiplier = multiplier_for(difficulty)
    if base == 0:
        return RoundScore(song_correct, artist_correct, album_correct, 0, 0, 0)
    points = int((Decimal(base) * multiplier).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return RoundScore(song_correct, artist_correct, album_correct, base, points - base, points)


def score_guess(answer: CardAnswer, guess: Guess) -> RoundScore:
    song_correct = same_answer(guess.song, answer.song)
    artist_correct = same_answer(guess.artist, answer.artist)
    if answer.album:
        album_correct = same_answer(guess.album, answer.album)
    else:
        # Nothing to guess: leaving the album blank is the right answer
        album_correct = not (guess.album or '').strip()
    return compute_points(song_correct, artist_correct, album_correct, answer.difficulty)


def score_self_report(answer: CardAnswer, report: SelfReport) -> RoundScore:
    return compute_points(bool(report.song_knew), bool(report.artist_knew), bool(report.album_knew), answer.difficulty)
