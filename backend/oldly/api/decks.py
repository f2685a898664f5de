from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from oldly import db
from oldly.api.errors import register_error_handlers
from oldly.models import Card, Deck, UserDeck
from oldly.services.games.errors import NotFound


decks = Blueprint('decks', __name__)
register_error_handlers(decks)


def _granted_deck_ids():
    if not current_user.is_authenticated:
        return set()
    rows = db.session.query(UserDeck.deck_id).filter_by(user_id=current_user.id).all()
    return {row[0] for row in rows}


def _deck_payload(deck, card_count, granted):
    payload = deck.to_dict()
    payload.update({
        'description': deck.description,
        'card_count': card_count,
        'has_access': deck.id in granted,
    })
    return payload


def _active_deck(deck_id):
    deck = Deck.query.filter_by(id=deck_id, active=True).first()
    if deck is None:
        raise NotFound('DECK_NOT_FOUND', 'Deck not found', {'deck_id': deck_id})
    return deck


@decks.route('/', methods=['GET'])
def list_decks():
    """Active decks, newest first, with whether the caller may play each one."""
    counts = (
        db.session.query(Card.deck_id, func.count(Card.id).label('card_count'))
        .group_by(Card.deck_id)
        .subquery()
    )
    query = (
        db.session.query(Deck, func.coalesce(counts.c.card_count, 0))
        .outerjoin(counts, counts.c.deck_id == Deck.id)
        .filter(Deck.active.is_(True))
    )
    theme = request.args.get('theme')
    if theme:
        query = query.filter(Deck.theme == theme)
    rows = query.order_by(Deck.created_at.desc(), Deck.id.desc()).all()
    granted = _granted_deck_ids()
    return jsonify({'decks': [_deck_payload(deck, count, granted) for deck, count in rows]})


@decks.route('/<int:deck_id>', methods=['GET'])
def get_deck(deck_id):
    deck = _active_deck(deck_id)
    count = db.session.query(func.count(Card.id)).filter(Card.deck_id == deck.id).scalar() or 0
    return jsonify({'deck': _deck_payload(deck, count, _granted_deck_ids())})


@decks.route('/<int:deck_id>/activate', methods=['POST'])
@login_required
def activate_deck(deck_id):
    deck = _active_deck(deck_id)
    if UserDeck.query.filter_by(user_id=current_user.id, deck_id=deck.id).first() is not None:
        return jsonify({'message': 'Deck already active', 'deck_id': deck.id, 'created': False}), 200

    db.session.add(UserDeck(user_id=current_user.id, deck_id=deck.id))
    try:
        db.session.commit()
    except IntegrityError:
        # a parallel activation created the grant first
        db.session.rollback()
        return jsonify({'message': 'Deck already active', 'deck_id': deck.id, 'created': False}), 200
    current_app.logger.info(f"[deck-activate] user={current_user.id} deck={deck.id}")
    return jsonify({'message': 'Deck activated', 'deck_id': deck.id, 'created': True}), 201
