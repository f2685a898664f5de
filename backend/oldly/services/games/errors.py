"""Error kinds raised by the session services.

Every failure carries a logical ``kind`` (translated to an HTTP status by
the API layer), a stable machine ``code`` and optional ``details`` the
client can use, e.g. the id of the session already in progress.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = 'validation'
    ACCESS_DENIED = 'access_denied'
    NOT_FOUND = 'not_found'
    STATE_CONFLICT = 'state_conflict'
    INTERNAL = 'internal'


class GameError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.message, 'code': self.code}
        payload.update(self.details)
        return payload


class ValidationError(GameError):
    kind = ErrorKind.VALIDATION


class AccessDenied(GameError):
    kind = ErrorKind.ACCESS_DENIED


class NotFound(GameError):
    kind = ErrorKind.NOT_FOUND


class StateConflict(GameError):
    kind = ErrorKind.STATE_CONFLICT


class InternalError(GameError):
    kind = ErrorKind.INTERNAL


def card_already_played(card_id, participant_ids=None) -> StateConflict:
    details: Dict[str, Any] = {'card_id': card_id}
    if participant_ids:
        details['participant_ids'] = sorted(participant_ids)
    return StateConflict('CARD_ALREADY_PLAYED', 'This card was already played in this game', details)
