"""Turn order for competitive_turns sessions.

Whose turn it is never gets stored: it is always derived from the game's
``total_rounds`` and the participant count, so the only way to pass the
turn is to record a round.
"""


def current_turn_index(total_rounds: int, participant_count: int) -> int:
    if participant_count <= 0:
        raise ValueError('participant_count must be positive')
    return int(total_rounds or 0) % participant_count


def next_turn_index(total_rounds: int, participant_count: int) -> int:
    return current_turn_index(int(total_rounds or 0) + 1, participant_count)
