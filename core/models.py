# core/models.py
import datetime
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

import pytz

SOURCE_COMMUNITY = "community"
SOURCE_USER = "user"
SOURCES = (SOURCE_COMMUNITY, SOURCE_USER)

PLACEHOLDER_TITLE = "Untitled Prompt"
PLACEHOLDER_BODY = "No prompt content available."


def new_prompt_id() -> str:
    return str(uuid.uuid4())


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def parse_price(value) -> Optional[float]:
    """
    Normalize an incoming price. "free" (any case) maps to 0.0, numbers and
    numeric strings map to floats, anything missing maps to None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        s = value.strip().replace("$", "").replace(",", "")
        if s.lower() == "free":
            return 0.0
        return float(s)
    return float(value)


@dataclass(frozen=True)
class MarketplacePrompt:
    """
    Unified record for a prompt listed in the marketplace, whether imported
    from the community CSV or authored by a user. Optional commercial fields
    are only populated for user records.
    """
    id: str
    title: str
    prompt_body: str
    model: str
    source: str
    description: str = ""
    author: Optional[str] = None
    price: Optional[float] = None
    rating: Optional[float] = None
    sales: Optional[int] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)
    category: str = ""
    last_updated: str = ""

    def __post_init__(self):
        if self.source not in SOURCES:
            raise ValueError(f"Unknown prompt source {self.source!r}")
        if not self.title or not self.prompt_body:
            raise ValueError("MarketplacePrompt requires a non-empty title and prompt_body")

    @property
    def is_free(self) -> bool:
        return self.price is None or self.price <= 0

    @property
    def effective_price(self) -> float:
        return 0.0 if self.is_free else float(self.price)
