"""Input validation helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence

from flask import current_app, has_app_context

from utils.time import to_naive_utc


@dataclass
class ValidationError(ValueError):
    message: str
    field: str | None = None
    invalid: List[Any] | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message

    def to_dict(self) -> dict:
        return {"error": "validation_error", "detail": self.message, "field": self.field}


def log_validation_error(err: ValidationError, *, context: str | None = None) -> None:
    if not has_app_context():
        return
    suffix = f" ({context})" if context else ""
    current_app.logger.warning(
        "Validation error%s: field=%s invalid=%s message=%s",
        suffix,
        err.field,
        err.invalid,
        err.message,
    )


def parse_positive_int(value: Any, *, field: str = "id", min_value: int = 1) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing {field}.", field=field, invalid=[value])
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    if out < min_value:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return out


def parse_optional_positive_int(value: Any, *, field: str = "id", min_value: int = 1) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_positive_int(value, field=field, min_value=min_value)


def parse_position(value: Any, *, field: str = "position") -> int:
    """Absolute binder positions start at zero."""
    return parse_positive_int(value, field=field, min_value=0)


def parse_optional_choice(value: Any, choices: Sequence[str], *, field: str) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    text = str(value).strip()
    if text not in choices:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return text


def parse_name(value: Any, *, field: str = "name", max_length: int = 128) -> str:
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"Missing {field}.", field=field, invalid=[value])
    if len(text) > max_length:
        raise ValidationError(f"{field.capitalize()} must be {max_length} characters or fewer.", field=field, invalid=[value])
    return text


def parse_card_id(value: Any, *, field: str = "card_id") -> str:
    text = str(value).strip() if value is not None else ""
    if not text or len(text) > 16:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return text


def parse_card_id_list(values: Any, *, field: str = "card_ids") -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [part for part in values.split(",")]
    if not isinstance(values, (list, tuple, set)):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[values])
    output = [parse_card_id(raw, field=field) for raw in values if str(raw).strip()]
    return list(dict.fromkeys(output))


def ensure_unique_orders(orders: Iterable[int], *, field: str = "order") -> None:
    """Reject duplicate or negative binder positions."""
    seen: set[int] = set()
    dupes: list[int] = []
    negative: list[int] = []
    for order in orders:
        if order < 0:
            negative.append(order)
        elif order in seen:
            dupes.append(order)
        seen.add(order)
    if negative:
        raise ValidationError("Positions must be zero or greater.", field=field, invalid=negative)
    if dupes:
        raise ValidationError("Each position may hold only one card.", field=field, invalid=sorted(set(dupes)))


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def parse_bool(value: Any, *, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])


def parse_optional_datetime(value: Any, *, field: str) -> Optional[datetime]:
    """ISO-8601 text to a naive UTC datetime; a trailing ``Z`` is accepted."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return to_naive_utc(parsed)


def parse_id_list(values: Any, *, field: str) -> list[int]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [part for part in values.split(",") if part.strip()]
    if not isinstance(values, (list, tuple, set)):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[values])
    return list(dict.fromkeys(parse_positive_int(raw, field=field) for raw in values))
