import pytest

from services.binder_document import BinderDocument
from services.binder_layout import CardSlot
from services.validation import ValidationError


def _doc(*pairs, **kwargs):
    return BinderDocument([CardSlot(card_id=c, order=o) for c, o in pairs], **kwargs)


def _pairs(document):
    return sorted((slot.card_id, slot.order) for slot in document.slots)


def test_sheet_count_is_derived_and_never_below_one():
    assert _doc().sheet_count == 1
    assert _doc(("a", 17)).sheet_count == 1
    assert _doc(("a", 18)).sheet_count == 2
    assert _doc(("a", 0), sheet_count=4).sheet_count == 4


def test_stats():
    document = _doc(("a", 0), ("b", 20))
    assert document.page_count == 4
    assert document.capacity == 36
    assert document.card_count == 2


def test_duplicate_orders_are_rejected():
    with pytest.raises(ValidationError) as excinfo:
        _doc(("a", 3), ("b", 3))
    assert excinfo.value.invalid == [3]


def test_insert_sheet_scenario():
    document = _doc(("c1", 0), ("c2", 9))

    assert document.insert_sheet(0)
    assert _pairs(document) == [("c1", 18), ("c2", 27)]
    assert document.sheet_count == 2


def test_insert_sheet_at_end_only_grows():
    document = _doc(("a", 3))
    assert document.insert_sheet(1)
    assert document.sheet_count == 2
    assert _pairs(document) == [("a", 3)]


def test_insert_sheet_out_of_range_is_a_noop():
    document = _doc(("a", 3))
    assert not document.insert_sheet(5)
    assert document.sheet_count == 1


def test_delete_sheet_scenario():
    document = _doc(("c1", 0), ("c2", 18))

    assert document.delete_sheet(0)
    assert _pairs(document) == [("c2", 0)]
    assert document.sheet_count == 1


def test_deleting_the_last_sheet_is_refused():
    document = _doc(("a", 2))
    for _ in range(3):
        assert not document.delete_sheet(0)
    assert document.sheet_count == 1
    assert _pairs(document) == [("a", 2)]


def test_delete_clamps_viewport():
    document = _doc(("a", 0), sheet_count=3, device="mobile", page_group=5)
    assert document.viewport.page_group == 5

    assert document.delete_sheet(2)
    assert document.sheet_count == 2
    assert document.viewport.page_group == 3


def test_reorder_rejects_out_of_range_and_same_index():
    document = _doc(("a", 0), ("b", 18))
    assert not document.reorder_sheet(0, 0)
    assert not document.reorder_sheet(0, 2)
    assert document.reorder_sheet(1, 0)
    assert _pairs(document) == [("a", 18), ("b", 0)]
    assert document.sheet_count == 2


def test_bulk_add_scenario():
    document = _doc(("occupied", 2))
    placed = document.bulk_add(2, ["cA", "cB"])

    assert placed == [3, 4]
    assert document.slot_at(3).card_id == "cA"
    assert document.slot_at(4).card_id == "cB"


def test_bulk_add_grows_binder():
    document = _doc(*((f"c{i}", i) for i in range(18)))
    document.bulk_add(0, ["x", "y"])

    assert document.sheet_count == 2
    assert document.slot_at(18).card_id == "x"


def test_bulk_add_without_growth_refuses_overflow():
    document = _doc(("a", 0), auto_grow=False)

    assert document.bulk_add(17, ["b", "c", "d"]) == []
    assert _pairs(document) == [("a", 0)]
    assert document.sheet_count == 1
    assert document.page_count == 2
    assert len(document.pages()) == 2
    assert document.total_pages == 4


def test_edits_without_growth_stay_inside_sheets():
    document = _doc(("a", 0), auto_grow=False)

    assert document.bulk_add(16, ["b", "c"]) == [16, 17]
    assert not document.place_card(18, "x")
    assert not document.swap(0, 30)
    assert document.place_card(5, "y")
    assert _pairs(document) == [("a", 0), ("b", 16), ("c", 17), ("y", 5)]

    # a reload from the payload keeps the same sheet count
    reloaded = BinderDocument(
        [CardSlot(card_id=row["cardId"], order=row["order"]) for row in document.save_payload()],
        document.sheet_count,
        auto_grow=False,
    )
    assert reloaded.sheet_count == 1


def test_place_and_swap_grow_when_needed():
    document = _doc()
    document.place_card(40, "a")
    assert document.sheet_count == 3

    document.swap(40, 0)
    assert _pairs(document) == [("a", 0)]
    assert document.sheet_count == 3


def test_remove_card_reports_whether_anything_changed():
    document = _doc(("a", 1))
    assert not document.remove_card(5)
    assert document.remove_card(1)
    assert document.card_count == 0
    assert document.sheet_count == 1


def test_rendered_pages_and_visible_spread():
    document = _doc(("a", 0), ("b", 9))
    rendered = document.rendered_pages()

    assert len(rendered) == 4
    assert rendered[1][0].card_id == "a"
    assert rendered[2][0].card_id == "b"
    assert document.visible_pages() == rendered[0:2]
    assert document.go_next()
    assert document.visible_pages() == rendered[2:4]
    assert not document.go_next()
    assert document.go_prev()


def test_page_group_for_position():
    desktop = _doc(sheet_count=2)
    assert desktop.page_group_for(0) == 0
    assert desktop.page_group_for(9) == 1
    assert desktop.page_group_for(27) == 2

    mobile = _doc(sheet_count=2, device="mobile")
    assert mobile.page_group_for(27) == 3


def test_sheet_summaries():
    document = _doc(("a", 20), sheet_count=2)
    sheets = document.sheets()

    assert [sheet.index for sheet in sheets] == [0, 1]
    assert not sheets[0].has_cards
    assert sheets[1].has_cards
    assert sheets[1].front[2].card_id == "a"


def test_save_payload_is_full_replacement():
    document = BinderDocument(
        [CardSlot(card_id="a", order=0, user_set_card_id=7), CardSlot(card_id="b", order=1)]
    )
    document.insert_sheet(0)
    payload = document.save_payload()

    assert [(row["userSetCardId"], row["cardId"], row["order"]) for row in payload] == [
        (7, "a", 18),
        (None, "b", 19),
    ]
