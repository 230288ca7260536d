"""Card catalog and owned-copy endpoints."""

from __future__ import annotations

from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import func, or_, select

from extensions import db
from models import Card, CardSet
from services.localization import localize_records, request_language
from services.user_cards import add_user_card, delete_user_card, list_user_cards, update_user_card
from services.validation import parse_card_id
from utils.time import isoformat

from .base import request_payload, views

MAX_CARD_RESULTS = 250


@views.route("/api/sets", methods=["GET"])
@login_required
def list_sets():
    sets = db.session.scalars(select(CardSet).order_by(CardSet.release_date, CardSet.id)).all()
    records = [
        {
            "id": card_set.id,
            "name": card_set.name,
            "series": card_set.series,
            "total": card_set.total,
            "releaseDate": isoformat(card_set.release_date),
        }
        for card_set in sets
    ]
    return jsonify({"sets": localize_records(records, "sets", ["name", "series"], request_language())})


@views.route("/api/cards", methods=["GET"])
@login_required
def list_cards():
    stmt = select(Card)
    set_id = request.args.get("set_id")
    if set_id:
        stmt = stmt.where(Card.set_id == parse_card_id(set_id, field="set_id"))
    search = (request.args.get("search") or "").strip()
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(Card.name).like(pattern), Card.number == search))
    cards = db.session.scalars(stmt.order_by(Card.set_id, Card.number, Card.id).limit(MAX_CARD_RESULTS)).all()
    records = [card.to_dict() for card in cards]
    return jsonify({"cards": localize_records(records, "cards", ["name"], request_language())})


@views.route("/api/user-cards", methods=["GET"])
@login_required
def user_cards():
    card_id = request.args.get("card_id")
    copies = list_user_cards(current_user, card_id=parse_card_id(card_id) if card_id else None)
    return jsonify({"userCards": [copy.to_dict() for copy in copies]})


@views.route("/api/user-cards", methods=["POST"])
@login_required
def create_user_card():
    copy = add_user_card(current_user, request_payload())
    db.session.commit()
    return jsonify(copy.to_dict()), 201


@views.route("/api/user-cards/<int:user_card_id>", methods=["PUT"])
@login_required
def edit_user_card(user_card_id: int):
    copy = update_user_card(current_user, user_card_id, request_payload())
    db.session.commit()
    return jsonify(copy.to_dict())


@views.route("/api/user-cards/<int:user_card_id>", methods=["DELETE"])
@login_required
def remove_user_card(user_card_id: int):
    delete_user_card(current_user, user_card_id)
    db.session.commit()
    return jsonify({"success": True})
