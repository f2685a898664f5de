from flask import jsonify, current_app
from oldly.services.games.errors import ErrorKind, GameError

STATUS_FOR_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


def register_error_handlers(blueprint):
    @blueprint.errorhandler(GameError)
    def handle_game_error(exc):
        status = STATUS_FOR_KIND.get(exc.kind, 500)
        if status >= 500:
            current_app.logger.error(f"[error] code={exc.code} message={exc.message}")
        return jsonify(exc.to_dict()), status
