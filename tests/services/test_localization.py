from models import Localization
from services.localization import (
    localize_record,
    localize_records,
    localized_value,
    upsert_localization,
)
from tests.factories import create_card, create_card_set


def test_missing_translation_falls_back_to_original(db_session):
    card = create_card(name="Charizard")

    assert localized_value(card, "cards", "name", "fr-FR") == "Charizard"
    assert localize_record(card, "cards", ["name"], "fr")["name"] == "Charizard"


def test_upsert_then_lookup_by_locale_prefix(db_session):
    card = create_card(name="Charizard")
    upsert_localization("cards", "name", card.id, "fr", "Dracaufeu")

    assert localized_value(card, "cards", "name", "fr-CA") == "Dracaufeu"
    assert localized_value(card, "cards", "name", "de") == "Charizard"


def test_upsert_updates_existing_row_and_invalidates_cache(db_session):
    card = create_card(name="Pikachu")
    upsert_localization("cards", "name", card.id, "jp", "Pikachu JP")
    assert localized_value(card, "cards", "name", "jp") == "Pikachu JP"

    upsert_localization("cards", "name", card.id, "jp", "ピカチュウ")

    assert Localization.query.filter_by(record_id=card.id, language="jp").count() == 1
    assert localized_value(card, "cards", "name", "jp") == "ピカチュウ"


def test_localize_records_batches_dicts(db_session):
    card_set = create_card_set(name="Base")
    first = create_card(card_set=card_set, name="Bulbasaur")
    second = create_card(card_set=card_set, name="Squirtle")
    upsert_localization("cards", "name", second.id, "de", "Schiggy")

    out = localize_records([first.to_dict(), second.to_dict()], "cards", ["name"], "de-AT")

    assert [entry["name"] for entry in out] == ["Bulbasaur", "Schiggy"]
    assert out[1]["number"] == second.number


def test_localize_records_empty(db_session):
    assert localize_records([], "cards", ["name"], "fr") == []
