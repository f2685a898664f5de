from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from oldly.api.errors import register_error_handlers
from oldly.services.games.errors import ValidationError
from oldly.services.games.manager import build_manager
from oldly.services.games.modes import (
    CompetitiveRound, ParticipantGuess, ParticipantReport, ScoreRound, SimpleRound, TurnRound,
)
from oldly.services.games.scoring import Guess, SelfReport


games = Blueprint('games', __name__)
register_error_handlers(games)


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('INVALID_BODY', 'Request body must be a JSON object')
    return data


def _int_field(data, key, code='INVALID_ID'):
    value = data.get(key)
    if isinstance(value, bool):
        value = None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(code, f'{key} must be numeric', {'field': key}) from None


def _text(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError('INVALID_GUESS', 'Guesses must be strings')
    return value.strip()


def _guess(data):
    return Guess(
        song=_text(data.get('song_guess')),
        artist=_text(data.get('artist_guess')),
        album=_text(data.get('album_guess')),
    )


def _self_report(data):
    knew = data.get('user_knew') or {}
    if not isinstance(knew, dict):
        raise ValidationError('INVALID_SELF_REPORT', 'user_knew must be an object with song_knew, artist_knew, album_knew')
    for key in ('song_knew', 'artist_knew', 'album_knew'):
        if key in knew and not isinstance(knew[key], bool):
            raise ValidationError('INVALID_SELF_REPORT', f'{key} must be a boolean', {'field': key})
    return SelfReport(
        song_knew=knew.get('song_knew', False),
        artist_knew=knew.get('artist_knew', False),
        album_knew=knew.get('album_knew', False),
    )


def _participant_answers(data):
    answers = data.get('participant_answers')
    if not isinstance(answers, list) or not answers:
        raise ValidationError('NO_ANSWERS', 'participant_answers must be a non-empty list')
    for entry in answers:
        if not isinstance(entry, dict):
            raise ValidationError('NO_ANSWERS', 'Each participant answer must be an object')
    return answers


@games.route('/start', methods=['POST'])
@login_required
def start_game():
    data = _body()
    deck_id = _int_field(data, 'deck_id', code='INVALID_DECK')
    participants = data.get('participants') or []
    if not isinstance(participants, list):
        raise ValidationError('INVALID_PARTICIPANT_NAME', 'participants must be a list')
    game = build_manager().start_session(current_user.id, deck_id, data.get('mode'), participants)
    return jsonify({'message': 'Game started', 'game': game.to_dict()}), 201


@games.route('/active/<int:deck_id>', methods=['GET'])
@login_required
def get_active_game(deck_id):
    game = build_manager().get_active_session_for_deck(current_user.id, deck_id)
    return jsonify({'game': game.to_dict(include_rounds=True)})


@games.route('/score-card', methods=['POST'])
@login_required
def score_card():
    data = _body()
    card_id = _int_field(data, 'card_id')
    card, score = build_manager().preview_card_score(current_user.id, card_id, _self_report(data))
    return jsonify({
        'card_id': card.id,
        'difficulty': card.difficulty,
        'correct_answers': card.correct_answers(),
        'score': score.to_dict(),
    })


@games.route('/<int:game_id>', methods=['GET'])
@login_required
def get_game_state(game_id):
    game = build_manager().get_session_state(game_id, current_user.id)
    return jsonify({'game': game.to_dict(include_rounds=True)})


@games.route('/<int:game_id>/round', methods=['POST'])
@login_required
def submit_round(game_id):
    """Simple mode sends one guess; score mode sends participant_answers."""
    data = _body()
    card_id = _int_field(data, 'card_id')
    if 'participant_answers' in data:
        submission = ScoreRound(
            card_id=card_id,
            answers=tuple(
                ParticipantGuess(_int_field(a, 'participant_id'), _guess(a))
                for a in _participant_answers(data)
            ),
        )
    else:
        submission = SimpleRound(card_id=card_id, guess=_guess(data))
    outcome = build_manager().submit_round(game_id, current_user.id, submission)
    return jsonify(outcome.to_dict())


@games.route('/<int:game_id>/submit-competitive-round', methods=['POST'])
@login_required
def submit_competitive_round(game_id):
    data = _body()
    submission = CompetitiveRound(
        card_id=_int_field(data, 'card_id'),
        answers=tuple(
            ParticipantReport(_int_field(a, 'participant_id'), _self_report(a))
            for a in _participant_answers(data)
        ),
    )
    outcome = build_manager().submit_round(game_id, current_user.id, submission)
    return jsonify(outcome.to_dict())


@games.route('/<int:game_id>/submit-turn-round', methods=['POST'])
@login_required
def submit_turn_round(game_id):
    data = _body()
    submission = TurnRound(
        card_id=_int_field(data, 'card_id'),
        participant_id=_int_field(data, 'participant_id'),
        report=_self_report(data),
    )
    outcome = build_manager().submit_turn_round(game_id, current_user.id, submission)
    payload = outcome.to_dict()
    turn = outcome.game.current_turn()
    payload['next_turn'] = {'participant_id': turn.id, 'name': turn.name} if turn else None
    return jsonify(payload)


@games.route('/<int:game_id>/finish', methods=['POST'])
@login_required
def finish_game(game_id):
    outcome = build_manager().finish_session(game_id, current_user.id)
    payload = outcome.to_dict()
    payload['message'] = 'Game finished'
    return jsonify(payload)
