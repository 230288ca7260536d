"""Locale-keyed translations for catalog rows.

Translations live in the ``localizations`` table keyed by
``(table_name, column_name, record_id, language)``. Lookups always fall back
to the record's own value when no translation exists, so English data stays
usable for every locale.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from flask import request
from sqlalchemy import select

from extensions import cache, db
from models import Localization
from services.card_attributes import DEFAULT_LANGUAGE, LANGUAGE_CODES, language_from_locale

logger = logging.getLogger(__name__)


def _record_id(record: Any) -> str:
    if isinstance(record, Mapping):
        return str(record["id"])
    return str(record.id)


def _record_value(record: Any, column: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(column)
    return getattr(record, column, None)


def _as_dict(record: Any, columns: Iterable[str]) -> Dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    out = {"id": record.id}
    for column in columns:
        out[column] = getattr(record, column, None)
    return out


@cache.memoize(timeout=600)
def _translations_for(table: str, record_id: str, language: str) -> Dict[str, str]:
    rows = db.session.execute(
        select(Localization.column_name, Localization.value).where(
            Localization.table_name == table,
            Localization.record_id == record_id,
            Localization.language == language,
        )
    ).all()
    return {column: value for column, value in rows}


def request_language(default: str = DEFAULT_LANGUAGE) -> str:
    """``?lang=`` wins, then the best ``Accept-Language`` match."""
    explicit = request.args.get("lang")
    if explicit:
        return language_from_locale(explicit)
    best = request.accept_languages.best_match(LANGUAGE_CODES)
    return best or default


def localized_value(record: Any, table: str, column: str, locale: Optional[str]) -> Any:
    language = language_from_locale(locale)
    translations = _translations_for(table, _record_id(record), language)
    if column in translations:
        return translations[column]
    return _record_value(record, column)


def localize_record(record: Any, table: str, columns: Sequence[str], locale: Optional[str]) -> Dict[str, Any]:
    language = language_from_locale(locale)
    translations = _translations_for(table, _record_id(record), language)
    out = _as_dict(record, columns)
    for column in columns:
        if column in translations:
            out[column] = translations[column]
    return out


def localize_records(
    records: Sequence[Any],
    table: str,
    columns: Sequence[str],
    locale: Optional[str],
) -> List[Dict[str, Any]]:
    """Batch form of :func:`localize_record`: one query for all records."""
    if not records:
        return []
    language = language_from_locale(locale)
    ids = list(dict.fromkeys(_record_id(record) for record in records))
    rows = db.session.execute(
        select(Localization.record_id, Localization.column_name, Localization.value).where(
            Localization.table_name == table,
            Localization.language == language,
            Localization.column_name.in_(list(columns)),
            Localization.record_id.in_(ids),
        )
    ).all()
    by_record: Dict[str, Dict[str, str]] = {}
    for record_id, column, value in rows:
        by_record.setdefault(record_id, {})[column] = value

    out: List[Dict[str, Any]] = []
    for record in records:
        localized = _as_dict(record, columns)
        localized.update(by_record.get(_record_id(record), {}))
        out.append(localized)
    return out


def upsert_localization(table: str, column: str, record_id: Any, locale: str, value: str) -> Localization:
    language = language_from_locale(locale)
    record_id = str(record_id)
    row = db.session.execute(
        select(Localization).where(
            Localization.table_name == table,
            Localization.column_name == column,
            Localization.record_id == record_id,
            Localization.language == language,
        )
    ).scalar_one_or_none()
    if row is None:
        row = Localization(
            table_name=table,
            column_name=column,
            record_id=record_id,
            language=language,
            value=value,
        )
        db.session.add(row)
    else:
        row.value = value
    db.session.flush()
    cache.delete_memoized(_translations_for, table, record_id, language)
    logger.debug("Stored %s translation for %s.%s #%s", language, table, column, record_id)
    return row
