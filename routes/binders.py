"""Binder (user set) API: CRUD, rendered layout, sheet overview and edits."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import select

from extensions import db
from models import Card
from services import user_sets as user_set_service
from services.binder_document import BinderDocument
from services.binder_layout import CardSlot
from services.localization import localize_records, request_language
from services.placement import PreferenceToggles, card_level_badges, slot_status
from services.validation import (
    ValidationError,
    parse_card_id_list,
    parse_name,
    parse_position,
    parse_positive_int,
)

from .base import request_device, request_payload, views

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUTHY


def _page_group_arg(payload: Optional[Dict[str, Any]] = None) -> int:
    raw = (payload or {}).get("page_group", request.args.get("page_group"))
    if raw in (None, ""):
        return 0
    return parse_positive_int(raw, field="page_group", min_value=0)


def _toggles() -> PreferenceToggles:
    return PreferenceToggles(
        language=_flag(request.args.get("match_language")),
        variant=_flag(request.args.get("match_variant")),
        condition=_flag(request.args.get("match_condition")),
    )


def _card_lookup(card_ids, language: str) -> Dict[str, Dict[str, Any]]:
    ids = sorted({card_id for card_id in card_ids if card_id})
    if not ids:
        return {}
    cards = db.session.scalars(select(Card).where(Card.id.in_(ids))).all()
    localized = localize_records([card.to_dict() for card in cards], "cards", ["name"], language)
    return {entry["id"]: entry for entry in localized}


def _slot_payload(slot: Optional[CardSlot]) -> Optional[Dict[str, Any]]:
    if slot is None:
        return None
    payload = slot.to_payload()
    payload["userCardId"] = slot.user_card_id
    return payload


def _document_state(document: BinderDocument) -> Dict[str, Any]:
    return {
        "device": document.viewport.device,
        "pageGroup": document.viewport.page_group,
        "maxPageGroup": document.viewport.max_page_group(document.total_pages),
        "sheetCount": document.sheet_count,
        "pageCount": document.page_count,
        "capacity": document.capacity,
        "totalPages": document.total_pages,
    }


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@views.route("/api/binders", methods=["GET"])
@login_required
def list_binders():
    binders = user_set_service.list_user_sets(current_user)
    out = []
    for user_set in binders:
        entry = user_set_service.user_set_summary(user_set)
        entry["cardCount"] = user_set_service.card_count(user_set)
        out.append(entry)
    return jsonify({"binders": out})


@views.route("/api/binders", methods=["POST"])
@login_required
def create_binder():
    payload = request_payload()
    preferences = user_set_service.parse_preferences(payload)
    user_set = user_set_service.create_user_set(
        current_user,
        payload.get("name"),
        parse_card_id_list(payload.get("cardIds", payload.get("card_ids")), field="cardIds"),
        image=payload.get("image"),
        **preferences,
    )
    db.session.commit()
    current_app.logger.info("Binder %s created", user_set.id)
    return jsonify(user_set_service.user_set_detail(user_set)), 201


@views.route("/api/binders/<int:user_set_id>", methods=["GET"])
@login_required
def get_binder(user_set_id: int):
    user_set = user_set_service.get_user_set(current_user, user_set_id)
    detail = user_set_service.user_set_detail(user_set)
    cards = _card_lookup((slot["cardId"] for slot in detail["cards"]), request_language())
    for slot in detail["cards"]:
        slot["card"] = cards.get(slot["cardId"])
    return jsonify(detail)


@views.route("/api/binders/<int:user_set_id>", methods=["PUT"])
@login_required
def update_binder(user_set_id: int):
    payload = request_payload()
    preferences = user_set_service.parse_preferences(payload)
    cards = user_set_service.parse_slot_payload(payload.get("cards", []))
    user_set = user_set_service.update_user_set(
        current_user,
        user_set_id,
        name=parse_name(payload.get("name")),
        image=payload.get("image"),
        cards=cards,
        **preferences,
    )
    db.session.commit()
    return jsonify(user_set_service.user_set_detail(user_set))


@views.route("/api/binders/<int:user_set_id>", methods=["DELETE"])
@login_required
def delete_binder(user_set_id: int):
    user_set_service.delete_user_set(current_user, user_set_id)
    db.session.commit()
    return jsonify({"ok": True})


# ---------------------------------------------------------------------------
# Layout views
# ---------------------------------------------------------------------------

@views.route("/api/binders/<int:user_set_id>/layout", methods=["GET"])
@login_required
def binder_layout(user_set_id: int):
    user_set = user_set_service.get_user_set(current_user, user_set_id)
    document = user_set_service.load_document(
        user_set,
        device=request_device(),
        page_group=_page_group_arg(),
    )
    language = request_language()
    cards = _card_lookup((slot.card_id for slot in document.slots), language)
    copies = user_set_service.owned_copies(current_user)
    placements = user_set_service.placement_map(current_user)
    binder_prefs = user_set_service.binder_preferences(user_set)
    toggles = _toggles()
    viewport = document.viewport

    dense = [entry for page in document.pages() for entry in page]
    positioned: List[Tuple[int, Optional[CardSlot]]] = list(enumerate(dense))
    rendered = viewport.build_pages(positioned)
    visible_start = viewport.start_page_index()
    visible_end = visible_start + viewport.pages_visible
    total_pages = len(rendered)

    pages = []
    for index, page in enumerate(rendered):
        page_number = index + 1
        is_cover = viewport.is_cover_page(page_number, total_pages)
        slots_out = []
        for entry in page:
            if entry is None:
                slots_out.append(None)
                continue
            position, slot = entry
            view: Dict[str, Any] = {"position": position}
            if slot is not None:
                view.update(_slot_payload(slot))
                view["card"] = cards.get(slot.card_id)
                view["status"] = slot_status(
                    slot,
                    user_set_id=user_set.id,
                    binder_prefs=binder_prefs,
                    copies=copies,
                    placements=placements,
                    toggles=toggles,
                    known_card_ids=set(cards),
                ).to_dict()
                view["badges"] = card_level_badges(slot, binder_prefs)
            slots_out.append(view)
        pages.append(
            {
                "pageNumber": page_number,
                "displayNumber": None if is_cover else viewport.display_page_number(page_number),
                "isCover": is_cover,
                "visible": visible_start <= index < visible_end,
                "slots": slots_out,
            }
        )

    out = _document_state(document)
    out.update(
        {
            "binder": user_set_service.user_set_summary(user_set),
            "language": language,
            "canGoNext": viewport.can_go_next(document.total_pages),
            "canGoPrev": viewport.can_go_prev(),
            "pages": pages,
        }
    )
    return jsonify(out)


@views.route("/api/binders/<int:user_set_id>/sheets", methods=["GET"])
@login_required
def binder_sheets(user_set_id: int):
    user_set = user_set_service.get_user_set(current_user, user_set_id)
    document = user_set_service.load_document(user_set)
    sheets = [
        {
            "index": sheet.index,
            "hasCards": sheet.has_cards,
            "front": [_slot_payload(slot) for slot in sheet.front],
            "back": [_slot_payload(slot) for slot in sheet.back],
        }
        for sheet in document.sheets()
    ]
    return jsonify(
        {
            "binder": user_set_service.user_set_summary(user_set),
            "sheetCount": document.sheet_count,
            "pageCount": document.page_count,
            "capacity": document.capacity,
            "cardCount": document.card_count,
            "sheets": sheets,
        }
    )


# ---------------------------------------------------------------------------
# Stateless editing
# ---------------------------------------------------------------------------

def _apply_operation(document: BinderDocument, operation: Dict[str, Any]) -> Tuple[bool, Any]:
    kind = operation.get("type")
    if kind == "insert_sheet":
        return document.insert_sheet(parse_position(operation.get("at"), field="at")), None
    if kind == "delete_sheet":
        return document.delete_sheet(parse_position(operation.get("index"), field="index")), None
    if kind == "reorder_sheet":
        return document.reorder_sheet(
            parse_position(operation.get("from"), field="from"),
            parse_position(operation.get("to"), field="to"),
        ), None
    if kind == "remove":
        return document.remove_card(parse_position(operation.get("position"))), None
    if kind == "place":
        card_ids = parse_card_id_list([operation.get("card_id", operation.get("cardId"))], field="card_id")
        if not card_ids:
            raise ValidationError("Missing card_id.", field="card_id")
        return document.place_card(parse_position(operation.get("position")), card_ids[0]), None
    if kind == "bulk_add":
        card_ids = parse_card_id_list(operation.get("card_ids", operation.get("cardIds")), field="card_ids")
        placed = document.bulk_add(parse_position(operation.get("position")), card_ids)
        return bool(placed), placed
    if kind == "swap":
        return document.swap(parse_position(operation.get("a"), field="a"), parse_position(operation.get("b"), field="b")), None
    raise ValidationError("Unknown operation.", field="operation", invalid=[kind])


@views.route("/api/binders/<int:user_set_id>/edit", methods=["POST"])
@login_required
def edit_binder(user_set_id: int):
    """Apply one edit to a client-held working copy; nothing is persisted."""
    user_set_service.get_user_set(current_user, user_set_id)
    payload = request_payload()
    slots = user_set_service.parse_slot_payload(payload.get("slots", []))
    raw_sheet_count = payload.get("sheet_count")
    sheet_count = None if raw_sheet_count in (None, "") else parse_positive_int(raw_sheet_count, field="sheet_count")
    document = BinderDocument(
        slots,
        sheet_count,
        device=request_device(payload),
        page_group=_page_group_arg(payload),
        auto_grow=bool(current_app.config.get("BINDER_AUTO_GROW", True)),
    )

    operation = payload.get("operation")
    if not isinstance(operation, dict):
        raise ValidationError("operation must be an object.", field="operation", invalid=[operation])

    applied, result = _apply_operation(document, operation)
    if not applied:
        current_app.logger.warning(
            "Binder %s edit %s was a no-op", user_set_id, operation.get("type")
        )

    out = _document_state(document)
    out.update(
        {
            "applied": applied,
            "result": result,
            "slots": [_slot_payload(slot) for slot in document.slots],
            "pages": [[_slot_payload(slot) for slot in page] for page in document.pages()],
            "savePayload": document.save_payload(),
        }
    )
    return jsonify(out)


# ---------------------------------------------------------------------------
# Owned copy placement
# ---------------------------------------------------------------------------

@views.route("/api/binders/slots/<int:slot_id>/place", methods=["POST"])
@login_required
def place_user_card(slot_id: int):
    payload = request_payload()
    user_card_id = parse_positive_int(payload.get("userCardId", payload.get("user_card_id")), field="userCardId")
    slot = user_set_service.place_card(current_user, slot_id, user_card_id)
    db.session.commit()
    return jsonify(user_set_service.slot_to_dict(slot))


@views.route("/api/binders/slots/<int:slot_id>/unplace", methods=["POST"])
@login_required
def unplace_user_card(slot_id: int):
    slot = user_set_service.unplace_card(current_user, slot_id)
    db.session.commit()
    return jsonify(user_set_service.slot_to_dict(slot))


@views.route("/api/binders/placements", methods=["GET"])
@login_required
def binder_placements():
    return jsonify({"placements": user_set_service.placed_user_card_ids(current_user)})
