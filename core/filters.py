# core/filters.py
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .models import MarketplacePrompt

TAB_ALL = "all"
TAB_COMMUNITY = "community"
TAB_USER_UPLOADS = "userUploads"
TABS = (TAB_ALL, TAB_COMMUNITY, TAB_USER_UPLOADS)

ALL_MODELS = "all"
ALL_PRICES = "all"

AI_MODELS = [
    {"id": ALL_MODELS, "name": "All Models"},
    {"id": "gpt-4-turbo", "name": "GPT-4 Turbo", "provider": "OpenAI"},
    {"id": "gpt-4", "name": "GPT-4", "provider": "OpenAI"},
    {"id": "gpt-3.5-turbo", "name": "GPT-3.5 Turbo", "provider": "OpenAI"},
    {"id": "claude-3-opus", "name": "Claude 3 Opus", "provider": "Anthropic"},
    {"id": "claude-3-sonnet", "name": "Claude 3 Sonnet", "provider": "Anthropic"},
    {"id": "gemini-pro", "name": "Gemini Pro", "provider": "Google"},
]

PRICE_RANGES = [
    {"id": ALL_PRICES, "name": "All Prices"},
    {"id": "free", "name": "Free"},
    {"id": "paid", "name": "Paid"},
    {"id": "under-5", "name": "Under $5"},
    {"id": "$5-10", "name": "$5 - $10"},
    {"id": "over-10", "name": "Over $10"},
]

SORT_OPTIONS = [
    {"id": "popular", "name": "Most Popular"},
    {"id": "newest", "name": "Newest"},
    {"id": "price-asc", "name": "Price: Low to High"},
    {"id": "price-desc", "name": "Price: High to Low"},
]

MODEL_IDS = tuple(m["id"] for m in AI_MODELS)
PRICE_RANGE_IDS = tuple(r["id"] for r in PRICE_RANGES)
SORT_IDS = tuple(o["id"] for o in SORT_OPTIONS)

_PRICE_PREDICATES: Dict[str, Callable[[float], bool]] = {
    ALL_PRICES: lambda p: True,
    "free": lambda p: p <= 0,
    "paid": lambda p: p > 0,
    "under-5": lambda p: p < 5,
    "$5-10": lambda p: 5 <= p <= 10,
    "over-10": lambda p: p > 10,
}


def _popularity_key(p: MarketplacePrompt):
    return (p.sales or 0, p.rating or 0.0)


# sort id -> (key, descending)
_SORT_KEYS: Dict[str, Tuple[Callable[[MarketplacePrompt], Any], bool]] = {
    "popular": (_popularity_key, True),
    "newest": (lambda p: p.last_updated or "", True),
    "price-asc": (lambda p: p.effective_price, False),
    "price-desc": (lambda p: p.effective_price, True),
}


def model_slug(model: str) -> str:
    """'ChatGPT-4' -> 'chatgpt-4', 'Claude 3.5' -> 'claude-3.5'."""
    return (model or "").lower().replace(" ", "-")


def _base_set(
    user_prompts: Iterable[MarketplacePrompt],
    community_prompts: Iterable[MarketplacePrompt],
    tab: str,
) -> List[MarketplacePrompt]:
    if tab == TAB_USER_UPLOADS:
        return list(user_prompts)
    if tab == TAB_COMMUNITY:
        return list(community_prompts)
    if tab == TAB_ALL:
        return list(user_prompts) + list(community_prompts)
    raise ValueError(f"Unknown tab {tab!r}; expected one of {TABS}")


def matches_search(prompt: MarketplacePrompt, term: str) -> bool:
    needle = term.lower()
    return needle in prompt.title.lower() or needle in prompt.prompt_body.lower()


def sort_prompts(prompts: List[MarketplacePrompt], sort: Optional[str]) -> List[MarketplacePrompt]:
    """Stable sort by one of SORT_OPTIONS; a falsy sort keeps the given order."""
    if not sort:
        return list(prompts)
    if sort not in _SORT_KEYS:
        raise ValueError(f"Unknown sort option {sort!r}; expected one of {SORT_IDS}")
    key, descending = _SORT_KEYS[sort]
    return sorted(prompts, key=key, reverse=descending)


def filter_prompts(
    user_prompts: Iterable[MarketplacePrompt],
    community_prompts: Iterable[MarketplacePrompt],
    tab: str = TAB_ALL,
    search: str = "",
    model: str = ALL_MODELS,
    price: str = ALL_PRICES,
    sort: Optional[str] = None,
) -> List[MarketplacePrompt]:
    """
    Select the prompts visible for the current marketplace selection.

    The base set is chosen by tab (user records come before community records
    on the "all" tab), then narrowed by search term, model and price range.
    Filtering never reorders; only an explicit sort does.
    """
    prompts = _base_set(user_prompts, community_prompts, tab)

    term = search or ""
    if term:
        prompts = [p for p in prompts if matches_search(p, term)]

    if model and model != ALL_MODELS:
        prompts = [p for p in prompts if model_slug(p.model) == model]

    price = price or ALL_PRICES
    predicate = _PRICE_PREDICATES.get(price)
    if predicate is None:
        raise ValueError(f"Unknown price range {price!r}; expected one of {PRICE_RANGE_IDS}")
    if price != ALL_PRICES:
        prompts = [p for p in prompts if predicate(p.effective_price)]

    return sort_prompts(prompts, sort)
