import pytest

from oldly.services.games.scoring import (
    CardAnswer, Guess, SelfReport, compute_points, normalize, score_guess, score_self_report,
)


SODA = CardAnswer(song='De música ligera', artist='Soda Stereo', album=None, difficulty='medium')
FITO = CardAnswer(song='Alarma entre los ángeles', artist='Fito Páez', album='Giros', difficulty='hard')


def test_normalize_strips_case_punctuation_and_spacing():
    assert normalize('  De   Música,  Ligera!! ') == 'de musica ligera'
    assert normalize('SODA STEREO') == 'soda stereo'
    assert normalize(None) == ''
    assert normalize('') == ''


@pytest.mark.parametrize('value', [
    'De música ligera', '  ¡¡Hola!!  mundo  ', 'Ji ji ji', "Rock'n'Roll\t\tBaby", '...', 'Ñandú  Ü', 'a_b c', 'ℌ', '\U0001d400BBA',
])
def test_normalize_is_idempotent(value):
    once = normalize(value)
    assert normalize(once) == once


@pytest.mark.parametrize('difficulty', ['easy', 'medium', 'hard'])
def test_zero_base_gets_no_multiplier(difficulty):
    score = compute_points(False, False, False, difficulty)
    assert (score.base, score.bonus, score.points) == (0, 0, 0)


def test_unknown_difficulty_is_rejected():
    with pytest.raises(ValueError):
        compute_points(True, False, False, 'legendary')


def test_medium_card_without_album_scenario():
    score = score_guess(SODA, Guess(song='de musica ligera!!', artist='SODA STEREO', album=''))
    assert score.song_correct and score.artist_correct and score.album_correct
    assert score.base == 3
    assert score.points == 5
    assert score.bonus == 2


def test_album_less_card_penalises_any_album_guess():
    assert score_guess(SODA, Guess(song='x', artist='y', album=None)).album_correct is True
    assert score_guess(SODA, Guess(song='x', artist='y', album='')).album_correct is True
    assert score_guess(SODA, Guess(song='x', artist='y', album='Signos')).album_correct is False


def test_card_with_album_compares_normalized_title():
    score = score_guess(FITO, Guess(song='alarma entre los angeles', artist='fito paez', album='GIROS.'))
    assert (score.song_correct, score.artist_correct, score.album_correct) == (True, True, True)
    assert score.points == 6
    assert score.bonus == 3

    missing = score_guess(FITO, Guess(song='alarma entre los angeles', artist=None, album=None))
    assert (missing.song_correct, missing.artist_correct, missing.album_correct) == (True, False, False)
    assert missing.points == 2


def test_rounding_is_half_up_on_the_multiplied_total():
    # 1 * 1.5 = 1.5 -> 2, bonus 1
    one = compute_points(True, False, False, 'medium')
    assert (one.points, one.bonus) == (2, 1)
    # 2 * 1.5 = 3.0 -> 3, bonus 1
    two = compute_points(True, True, False, 'medium')
    assert (two.points, two.bonus) == (3, 1)
    easy = compute_points(True, True, True, 'easy')
    assert (easy.points, easy.bonus) == (3, 0)


def test_self_report_flags_are_the_correctness():
    score = score_self_report(FITO, SelfReport(song_knew=True, artist_knew=False, album_knew=True))
    assert (score.song_correct, score.artist_correct, score.album_correct) == (True, False, True)
    assert score.base == 2
    assert score.points == 4

    nothing = score_self_report(SODA, SelfReport())
    assert nothing.points == 0


def test_compatibility_capitals_match_case_insensitively():
    assert normalize('\U0001d400BBA') == 'abba'
    assert normalize('ℌola') == 'hola'
    styled = CardAnswer(song='\U0001d400BBA', artist='ABBA', album=None, difficulty='easy')
    assert score_guess(styled, Guess(song='abba', artist='abba', album=None)).song_correct is True
