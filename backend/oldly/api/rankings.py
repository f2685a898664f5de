from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy import func
from oldly import db
from oldly.api.errors import register_error_handlers
from oldly.models import Deck, Ranking, User
from oldly.services.games.errors import AccessDenied, NotFound, ValidationError


rankings = Blueprint('rankings', __name__)
register_error_handlers(rankings)


def _paging(default_limit=None):
    if default_limit is None:
        default_limit = int(current_app.config.get('RANKINGS_DEFAULT_LIMIT', 100))
    try:
        limit = int(request.args.get('limit', default_limit))
        offset = int(request.args.get('offset', 0))
    except (TypeError, ValueError):
        raise ValidationError('INVALID_PAGINATION', 'limit and offset must be numeric') from None
    if limit < 1 or offset < 0:
        raise ValidationError('INVALID_PAGINATION', 'limit must be positive and offset non-negative')
    return min(limit, 500), offset


def _iso(value):
    return value.isoformat() if value else None


def _deck_rankings(deck_id, limit, offset):
    rows = (
        Ranking.query.join(User, User.id == Ranking.user_id)
        .filter(Ranking.deck_id == deck_id, User.is_active.is_(True))
        .order_by(Ranking.points_total.desc(), Ranking.last_played_at.desc(), Ranking.id)
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [
        {
            'rank': offset + index + 1,
            'user': r.user.public_dict(),
            'points_total': r.points_total,
            'games_played': r.games_played,
            'last_played_at': _iso(r.last_played_at),
            'deck': r.deck.to_dict(),
        }
        for index, r in enumerate(rows)
    ]


def _global_totals():
    return (
        db.session.query(
            Ranking.user_id.label('user_id'),
            func.sum(Ranking.points_total).label('total_points'),
            func.sum(Ranking.games_played).label('total_games'),
            func.max(Ranking.last_played_at).label('last_played_at'),
            func.count(func.distinct(Ranking.deck_id)).label('decks_played'),
        )
        .join(User, User.id == Ranking.user_id)
        .filter(User.is_active.is_(True))
        .group_by(Ranking.user_id)
    )


def _global_rankings(limit, offset):
    totals = _global_totals().subquery()
    rows = (
        db.session.query(
            User,
            totals.c.total_points,
            totals.c.total_games,
            totals.c.last_played_at,
            totals.c.decks_played,
        )
        .join(totals, totals.c.user_id == User.id)
        .order_by(totals.c.total_points.desc(), totals.c.last_played_at.desc(), User.id)
        .limit(limit)
        .offset(offset)
        .all()
    )
    result = []
    for index, row in enumerate(rows):
        result.append({
            'rank': offset + index + 1,
            'user': row.User.public_dict(),
            'points_total': int(row.total_points or 0),
            'games_played': int(row.total_games or 0),
            'last_played_at': _iso(row.last_played_at),
            'decks_played': int(row.decks_played or 0),
        })
    return result


def _global_rank(user_id):
    totals = _global_totals().subquery()
    ranked = db.session.query(
        totals.c.user_id,
        func.row_number().over(
            order_by=(totals.c.total_points.desc(), totals.c.last_played_at.desc(), totals.c.user_id)
        ).label('position'),
    ).subquery()
    position = db.session.query(ranked.c.position).filter(ranked.c.user_id == user_id).scalar()
    return int(position) if position is not None else None


@rankings.route('/', methods=['GET'])
def list_rankings():
    limit, offset = _paging()
    deck_id = request.args.get('deck_id')
    pagination = {'limit': limit, 'offset': offset}
    if deck_id:
        try:
            deck_id = int(deck_id)
        except ValueError:
            raise ValidationError('INVALID_DECK', 'deck_id must be numeric') from None
        return jsonify({
            'rankings': _deck_rankings(deck_id, limit, offset),
            'deck_id': deck_id,
            'pagination': pagination,
        })
    return jsonify({
        'rankings': _global_rankings(limit, offset),
        'type': 'global',
        'pagination': pagination,
    })


@rankings.route('/user/<int:user_id>', methods=['GET'])
@login_required
def user_rankings(user_id):
    if user_id != current_user.id:
        raise AccessDenied('RANKINGS_ACCESS_DENIED', 'You can only see your own rankings')
    rows = (
        Ranking.query.filter_by(user_id=user_id)
        .order_by(Ranking.points_total.desc(), Ranking.id)
        .all()
    )
    return jsonify({
        'rankings': [
            {
                'id': r.id,
                'points_total': r.points_total,
                'games_played': r.games_played,
                'last_played_at': _iso(r.last_played_at),
                'deck': r.deck.to_dict(),
            }
            for r in rows
        ],
        'summary': {
            'total_points': sum(r.points_total for r in rows),
            'total_games': sum(r.games_played for r in rows),
            'decks_played': len(rows),
            'global_rank': _global_rank(user_id),
        },
    })


@rankings.route('/deck/<int:deck_id>/top', methods=['GET'])
def deck_top_players(deck_id):
    deck = db.session.get(Deck, deck_id)
    if deck is None:
        raise NotFound('INVALID_DECK', 'Deck not found', {'deck_id': deck_id})
    limit, _ = _paging(default_limit=10)
    return jsonify({
        'deck': deck.to_dict(),
        'top_players': _deck_rankings(deck_id, limit, 0),
    })
