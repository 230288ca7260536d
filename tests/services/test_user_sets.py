import pytest
from werkzeug.exceptions import Forbidden, NotFound

from extensions import db
from models import AuditLog, UserSet, UserSetCard
from services import user_sets
from services.binder_layout import CardSlot
from services.validation import ValidationError
from tests.factories import create_binder, create_cards, create_user_card


def _orders(user_set):
    return [(row.card_id, row.order) for row in sorted(user_set.cards, key=lambda r: r.order)]


def test_create_user_set_orders_cards_and_drops_duplicates(create_user):
    user, _ = create_user()
    a, b = create_cards(2)

    user_set = user_sets.create_user_set(user, "  Base Set  ", [b.id, a.id, b.id])

    assert user_set.name == "Base Set"
    assert _orders(user_set) == [(b.id, 0), (a.id, 1)]
    assert AuditLog.query.filter_by(action="binder_created").count() == 1


def test_create_user_set_rejects_unknown_cards(create_user):
    user, _ = create_user()
    with pytest.raises(ValidationError) as excinfo:
        user_sets.create_user_set(user, "Binder", ["nope-1"])
    assert excinfo.value.field == "cardId"


def test_create_user_set_requires_name(create_user):
    user, _ = create_user()
    with pytest.raises(ValidationError):
        user_sets.create_user_set(user, "   ", [])


def test_list_only_returns_own_binders(create_user):
    owner, _ = create_user()
    other, _ = create_user(email="other@example.com", username="other")
    first = create_binder(owner, name="First")
    second = create_binder(owner, name="Second")
    create_binder(other, name="Theirs")

    assert [row.id for row in user_sets.list_user_sets(owner)] == [first.id, second.id]


def test_get_user_set_enforces_ownership(create_user):
    owner, _ = create_user()
    other, _ = create_user(email="other@example.com", username="other")
    binder = create_binder(owner)

    assert user_sets.get_user_set(owner, binder.id).id == binder.id
    with pytest.raises(Forbidden):
        user_sets.get_user_set(other, binder.id)
    with pytest.raises(NotFound):
        user_sets.get_user_set(owner, 9999)


def test_update_reconciles_full_slot_list(create_user):
    user, _ = create_user()
    a, b, c, d = create_cards(4)
    binder = create_binder(user, placements=[(a, 0), (b, 1), (c, 2)])
    rows = {row.card_id: row for row in binder.cards}

    # a and b trade places, c is dropped, d is new
    updated = user_sets.update_user_set(
        user,
        binder.id,
        name="Renamed",
        cards=[
            CardSlot(card_id=a.id, order=1, user_set_card_id=rows[a.id].id),
            CardSlot(card_id=b.id, order=0, user_set_card_id=rows[b.id].id, preferred_language="fr"),
            CardSlot(card_id=d.id, order=20),
        ],
    )

    assert updated.name == "Renamed"
    assert _orders(updated) == [(b.id, 0), (a.id, 1), (d.id, 20)]
    assert UserSetCard.query.filter_by(user_set_id=binder.id, card_id=c.id).count() == 0
    assert db.session.get(UserSetCard, rows[a.id].id).order == 1
    assert db.session.get(UserSetCard, rows[b.id].id).preferred_language == "fr"


def test_update_shifting_every_slot_by_a_sheet(create_user):
    user, _ = create_user()
    cards = create_cards(3)
    binder = create_binder(user, placements=[(card, index) for index, card in enumerate(cards)])
    document = user_sets.load_document(binder)
    document.insert_sheet(0)

    saved = user_sets.save_document(user, binder, document)

    assert [order for _, order in _orders(saved)] == [18, 19, 20]


def test_update_rejects_duplicate_orders(create_user):
    user, _ = create_user()
    a, b = create_cards(2)
    binder = create_binder(user)

    with pytest.raises(ValidationError):
        user_sets.update_user_set(
            user,
            binder.id,
            name=binder.name,
            cards=[CardSlot(card_id=a.id, order=3), CardSlot(card_id=b.id, order=3)],
        )


def test_update_rejects_slots_from_another_binder(create_user):
    user, _ = create_user()
    (a,) = create_cards(1)
    mine = create_binder(user)
    elsewhere = create_binder(user, placements=[(a, 0)])
    foreign_row = elsewhere.cards[0]

    with pytest.raises(ValidationError) as excinfo:
        user_sets.update_user_set(
            user,
            mine.id,
            name=mine.name,
            cards=[CardSlot(card_id=a.id, order=0, user_set_card_id=foreign_row.id)],
        )
    assert excinfo.value.field == "userSetCardId"


def test_changing_a_slots_card_clears_its_placed_copy(create_user):
    user, _ = create_user()
    a, b = create_cards(2)
    binder = create_binder(user, placements=[(a, 0)])
    row = binder.cards[0]
    copy = create_user_card(user, a)
    user_sets.place_card(user, row.id, copy.id)

    user_sets.update_user_set(
        user, binder.id, name=binder.name, cards=[CardSlot(card_id=b.id, order=0, user_set_card_id=row.id)]
    )

    refreshed = db.session.get(UserSetCard, row.id)
    assert refreshed.card_id == b.id
    assert refreshed.user_card_id is None


def test_delete_user_set_removes_slots(create_user):
    user, _ = create_user()
    (a,) = create_cards(1)
    binder = create_binder(user, placements=[(a, 0)])
    binder_id = binder.id

    user_sets.delete_user_set(user, binder_id)

    assert db.session.get(UserSet, binder_id) is None
    assert UserSetCard.query.filter_by(user_set_id=binder_id).count() == 0


def test_place_card_rejects_copy_in_another_binder(create_user):
    user, _ = create_user()
    (a,) = create_cards(1)
    first = create_binder(user, name="Originals", placements=[(a, 0)])
    second = create_binder(user, name="Spares", placements=[(a, 0)])
    copy = create_user_card(user, a)

    user_sets.place_card(user, first.cards[0].id, copy.id)

    with pytest.raises(ValidationError) as excinfo:
        user_sets.place_card(user, second.cards[0].id, copy.id)
    assert 'already placed in "Originals"' in excinfo.value.message


def test_place_card_moves_copy_within_same_binder(create_user):
    user, _ = create_user()
    (a,) = create_cards(1)
    binder = create_binder(user, placements=[(a, 0), (a, 1)])
    first, second = sorted(binder.cards, key=lambda row: row.order)
    copy = create_user_card(user, a)

    user_sets.place_card(user, first.id, copy.id)
    user_sets.place_card(user, second.id, copy.id)

    assert db.session.get(UserSetCard, first.id).user_card_id is None
    assert db.session.get(UserSetCard, second.id).user_card_id == copy.id


def test_place_card_requires_matching_card_and_owner(create_user):
    user, _ = create_user()
    other, _ = create_user(email="other@example.com", username="other")
    a, b = create_cards(2)
    binder = create_binder(user, placements=[(a, 0)])
    wrong_card = create_user_card(user, b)
    not_mine = create_user_card(other, a)

    with pytest.raises(ValidationError):
        user_sets.place_card(user, binder.cards[0].id, wrong_card.id)
    with pytest.raises(Forbidden):
        user_sets.place_card(user, binder.cards[0].id, not_mine.id)


def test_unplace_and_list_placements(create_user):
    user, _ = create_user()
    (a,) = create_cards(1)
    binder = create_binder(user, name="Main", placements=[(a, 5)])
    copy = create_user_card(user, a)
    slot = user_sets.place_card(user, binder.cards[0].id, copy.id)

    assert user_sets.placed_user_card_ids(user) == [
        {"userCardId": copy.id, "userSetId": binder.id, "userSetName": "Main"}
    ]
    assert user_sets.placement_map(user) == {copy.id: binder.id}

    user_sets.unplace_card(user, slot.id)
    assert user_sets.placed_user_card_ids(user) == []


def test_load_document_carries_row_identity(create_user, app):
    user, _ = create_user()
    (a,) = create_cards(1)
    binder = create_binder(user, placements=[(a, 30)], preferred_language="de")

    document = user_sets.load_document(binder, device="mobile")

    assert document.sheet_count == 2
    assert document.viewport.is_mobile
    slot = document.slot_at(30)
    assert slot.user_set_card_id == binder.cards[0].id
    assert user_sets.binder_preferences(binder).language == "de"


def test_load_document_follows_auto_grow_config(create_user, app, monkeypatch):
    user, _ = create_user()
    binder = create_binder(user)
    monkeypatch.setitem(app.config, "BINDER_AUTO_GROW", False)

    assert user_sets.load_document(binder).auto_grow is False


def test_parse_slot_payload():
    slots = user_sets.parse_slot_payload(
        [
            {"userSetCardId": 4, "cardId": "base1-1", "order": 2, "preferredCondition": "Mint"},
            {"userSetCardId": None, "cardId": None, "order": 3},
            {"userSetCardId": None, "cardId": "base1-2", "order": 0},
        ]
    )
    assert [(slot.card_id, slot.order, slot.user_set_card_id) for slot in slots] == [
        ("base1-1", 2, 4),
        ("base1-2", 0, None),
    ]
    assert slots[0].preferred_condition == "Mint"


@pytest.mark.parametrize(
    "payload",
    [
        "not-a-list",
        [{"cardId": "a", "order": -1}],
        [{"cardId": "a", "order": 1}, {"cardId": "b", "order": 1}],
        [{"cardId": "a", "order": 0, "preferredLanguage": "xx"}],
        [{"cardId": "a", "order": 0, "userSetCardId": 1}, {"cardId": "b", "order": 1, "userSetCardId": 1}],
    ],
)
def test_parse_slot_payload_rejects_bad_input(payload):
    with pytest.raises(ValidationError):
        user_sets.parse_slot_payload(payload)
