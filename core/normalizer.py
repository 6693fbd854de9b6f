# core/normalizer.py
from typing import Any, Iterable, List, Mapping

from .models import (
    MarketplacePrompt,
    PLACEHOLDER_BODY,
    PLACEHOLDER_TITLE,
    SOURCE_USER,
    new_prompt_id,
    parse_price,
)

DEFAULT_USER_MODEL = "Other"


def _as_tags(value: Any) -> tuple:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(t.strip() for t in value.split(",") if t.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(str(t) for t in value)
    return ()


def _lenient(convert, value: Any):
    # Bad numeric fields are dropped rather than rejecting the whole record
    try:
        return convert(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _opt_float(value: Any):
    return None if value is None or value == "" else float(value)


def _opt_int(value: Any):
    return None if value is None or value == "" else int(float(value))


def normalize_user_prompt(record: Mapping[str, Any]) -> MarketplacePrompt:
    """
    Turn a locally authored prompt (which keeps its text under "description")
    into a MarketplacePrompt tagged as a user record.
    """
    description = str(record.get("description") or "")
    title = str(record.get("title") or "")
    record_id = record.get("id")

    return MarketplacePrompt(
        id=str(record_id) if record_id not in (None, "") else new_prompt_id(),
        title=title if title.strip() else PLACEHOLDER_TITLE,
        prompt_body=description or PLACEHOLDER_BODY,
        model=str(record.get("model") or DEFAULT_USER_MODEL),
        source=SOURCE_USER,
        description=description,
        author=record.get("author"),
        price=_lenient(parse_price, record.get("price")),
        rating=_lenient(_opt_float, record.get("rating")),
        sales=_lenient(_opt_int, record.get("sales")),
        tags=_as_tags(record.get("tags")),
        category=str(record.get("category") or ""),
        last_updated=str(record.get("last_updated") or record.get("lastUpdated") or ""),
    )


def normalize_user_prompts(records: Iterable[Mapping[str, Any]]) -> List[MarketplacePrompt]:
    return [normalize_user_prompt(r) for r in records]
