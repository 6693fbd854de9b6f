import os
import json
from typing import Any, Dict, List, Optional

from core.logger import get_logger
from core.errors import MarketplaceError
from core.filters import MODEL_IDS
from core.models import MarketplacePrompt
from core.normalizer import normalize_user_prompts
from core.plans import Capability, parse_plan
from core.session import AuthSession, MarketplaceState, SIGNED_IN, STATUS_EMPTY
from fetchers import community

logger = get_logger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "/data/config.json")

TAB = os.getenv("MARKETPLACE_TAB", "all")
SEARCH = os.getenv("MARKETPLACE_SEARCH", "")
MODEL = os.getenv("MARKETPLACE_MODEL", "all").strip().lower() or "all"
PRICE = os.getenv("MARKETPLACE_PRICE", "all").strip() or "all"
SORT = os.getenv("MARKETPLACE_SORT", "").strip() or None
PLAN = os.getenv("MARKETPLACE_PLAN", "")
LOAD_TIMEOUT = float(os.getenv("MARKETPLACE_LOAD_TIMEOUT", "120"))


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """
    Read the JSON config. A missing file is not fatal: the marketplace then
    shows community prompts only.
    """
    if not os.path.exists(path):
        logger.warning("Config file not found at %s; continuing without user prompts.", path)
        return {"user_prompts": []}
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg: Dict[str, Any] = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Failed to load config.json at %s: %s", path, e)
        raise SystemExit(1)

    if not isinstance(cfg, dict):
        logger.error("config.json must be an object.")
        raise SystemExit(1)

    user_prompts = cfg.get("user_prompts", [])
    if not isinstance(user_prompts, list):
        logger.error("config.json 'user_prompts' must be a list.")
        raise SystemExit(1)

    return cfg


def get_user_prompts(cfg: Dict[str, Any]) -> List[MarketplacePrompt]:
    records = [r for r in cfg.get("user_prompts", []) if isinstance(r, dict)]
    dropped = len(cfg.get("user_prompts", [])) - len(records)
    if dropped:
        logger.error("Ignoring %d user prompt entries that are not objects.", dropped)
    return normalize_user_prompts(records)


def format_prompt_line(p: MarketplacePrompt) -> str:
    if p.source == "community":
        price = "community"
    elif p.is_free:
        price = "free"
    else:
        price = f"${p.price:.2f}"
    return f"[{p.source}] {p.title} ({p.model}, {price})"


def build_state(cfg: Dict[str, Any], csv_url: Optional[str] = None) -> MarketplaceState:
    url = csv_url or cfg.get("community_csv_url") or community.COMMUNITY_CSV_URL
    if MODEL not in MODEL_IDS:
        logger.info("Model filter %r is not one of the listed models %s.", MODEL, MODEL_IDS)
    state = MarketplaceState(
        user_prompts=get_user_prompts(cfg),
        loader=lambda: community.load_community_prompts(url),
    )
    state.select(tab=TAB, search=SEARCH, model=MODEL, price=PRICE, sort=SORT)
    return state


def run_once() -> int:
    cfg = load_config()

    session = AuthSession()
    plan = parse_plan(PLAN)
    if plan is not None:
        session.apply_auth_event(SIGNED_IN, {"id": "cli", "plan": plan})
    if not session.can(Capability.BROWSE_MARKETPLACE):
        logger.error("Current session may not browse the marketplace.")
        return 1

    with build_state(cfg) as state:
        handle = state.start_community_load()
        handle.result(timeout=LOAD_TIMEOUT)
        logger.info("Marketplace loaded: %s", state.summary())

        banner = state.error_banner()
        if banner:
            logger.warning("%s (%s)", banner, state.community_error)

        prompts = state.visible_prompts()
        if not prompts and state.community_status == STATUS_EMPTY:
            logger.info("No prompts available for the current selection.")
        for p in prompts:
            print(format_prompt_line(p))

        if session.can(Capability.UPGRADE_OFFER):
            logger.info("Upgrade to Pro for team workspaces.")

    return 0


def main() -> None:
    try:
        raise SystemExit(run_once())
    except MarketplaceError as e:
        logger.error("Marketplace error: %s", e)
        raise SystemExit(2)
    except Exception as e:
        logger.exception("Fatal marketplace error: %s", e)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
