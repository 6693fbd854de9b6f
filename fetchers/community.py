# fetchers/community.py
import os
from typing import Callable, List, NamedTuple, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.csv_line import parse_csv_line
from core.errors import FetchError, FormatError, MarketplaceError
from core.logger import get_logger
from core.models import (
    MarketplacePrompt,
    PLACEHOLDER_BODY,
    PLACEHOLDER_TITLE,
    SOURCE_COMMUNITY,
    new_prompt_id,
    now_utc_iso,
)

logger = get_logger(__name__)

COMMUNITY_CSV_URL = os.getenv(
    "COMMUNITY_CSV_URL",
    "https://raw.githubusercontent.com/f/awesome-chatgpt-prompts/main/prompts.csv",
)
USER_AGENT = os.getenv("COMMUNITY_USER_AGENT", "promptmarket/0.1 (+community-import)")
PROXY_URL = os.getenv("COMMUNITY_PROXY_URL", "").strip()
FETCH_TIMEOUT = float(os.getenv("COMMUNITY_FETCH_TIMEOUT", "30"))
FETCH_ATTEMPTS = max(1, int(os.getenv("COMMUNITY_FETCH_ATTEMPTS", "3")))
DEFAULT_MODEL = os.getenv("COMMUNITY_DEFAULT_MODEL", "ChatGPT")

TITLE_COLUMN = "act"
BODY_COLUMN = "prompt"

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT, "Accept": "text/csv, text/plain;q=0.9"})
if PROXY_URL:
    SESSION.proxies.update({"http": PROXY_URL, "https": PROXY_URL})


class CommunityLoadResult(NamedTuple):
    prompts: List[MarketplacePrompt]
    error: Optional[MarketplaceError] = None


@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    wait=wait_exponential_jitter(initial=1, max=10),
    stop=stop_after_attempt(FETCH_ATTEMPTS),
    reraise=True,
)
def _fetch(url: str) -> str:
    r = SESSION.get(url, timeout=FETCH_TIMEOUT)
    if not r.ok:
        raise FetchError(
            f"Community prompt source returned HTTP {r.status_code}",
            status_code=r.status_code,
            url=url,
        )
    r.encoding = "utf-8-sig"
    return r.text


def fetch_community_csv(url: str = COMMUNITY_CSV_URL) -> str:
    """Download the community CSV as text; raises FetchError on any failure."""
    logger.info("Fetching community prompts from %s", url)
    try:
        return _fetch(url)
    except requests.RequestException as e:
        raise FetchError(f"Could not reach community prompt source: {e}", url=url) from e


def _column_positions(header_line: str) -> tuple[int, int]:
    columns = [c.strip().lower() for c in parse_csv_line(header_line)]
    missing = [c for c in (TITLE_COLUMN, BODY_COLUMN) if c not in columns]
    if missing:
        raise FormatError(
            f"Community CSV header is missing column(s): {', '.join(missing)}",
            missing_columns=missing,
        )
    return columns.index(TITLE_COLUMN), columns.index(BODY_COLUMN)


def parse_community_csv(
    text: str,
    id_factory: Callable[[], str] = new_prompt_id,
    fetched_at: Optional[str] = None,
) -> List[MarketplacePrompt]:
    """
    Map the "act" and "prompt" columns of the community CSV onto
    MarketplacePrompt records.

    Returns an empty list when there is no header or no data row. Raises
    FormatError when the header lacks either column. Rows too short to reach
    both columns, and rows where both values are blank, are skipped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    # only LF and CRLF end a record
    lines = [ln[:-1] if ln.endswith("\r") else ln for ln in text.split("\n")]
    lines = [ln for ln in lines if ln.strip()]
    if len(lines) < 2:
        logger.info("Community CSV has no data rows (%d non-blank lines).", len(lines))
        return []

    title_idx, body_idx = _column_positions(lines[0])
    needed = max(title_idx, body_idx) + 1
    stamp = fetched_at or now_utc_iso()

    prompts: List[MarketplacePrompt] = []
    skipped = 0
    for lineno, line in enumerate(lines[1:], start=2):
        fields = parse_csv_line(line)
        if len(fields) < needed:
            logger.debug(
                "Skipping community CSV line %d: %d field(s), need %d.",
                lineno, len(fields), needed,
            )
            skipped += 1
            continue

        title = fields[title_idx].strip()
        body = fields[body_idx].strip()
        if not title and not body:
            skipped += 1
            continue

        prompts.append(
            MarketplacePrompt(
                id=id_factory(),
                title=title or PLACEHOLDER_TITLE,
                prompt_body=body or PLACEHOLDER_BODY,
                model=DEFAULT_MODEL,
                source=SOURCE_COMMUNITY,
                last_updated=stamp,
            )
        )

    if skipped:
        logger.debug("Skipped %d community CSV line(s).", skipped)
    return prompts


def fetch_community_prompts(
    url: str = COMMUNITY_CSV_URL,
    id_factory: Callable[[], str] = new_prompt_id,
) -> List[MarketplacePrompt]:
    prompts = parse_community_csv(fetch_community_csv(url), id_factory=id_factory)
    logger.info("Community: imported %d prompts from %s", len(prompts), url)
    return prompts


def load_community_prompts(
    url: str = COMMUNITY_CSV_URL,
    fetch: Callable[[str], List[MarketplacePrompt]] = fetch_community_prompts,
) -> CommunityLoadResult:
    """
    Import community prompts without letting a failure escape. The caller
    gets either the prompts or the error to show; user prompts stay usable
    either way.
    """
    try:
        return CommunityLoadResult(fetch(url))
    except FetchError as e:
        logger.error(
            "Community prompt fetch failed for %s (status=%s): %s",
            url, e.status_code, e,
        )
        return CommunityLoadResult([], e)
    except FormatError as e:
        logger.error(
            "Community prompt source %s changed schema; missing %s: %s",
            url, list(e.missing_columns), e,
        )
        return CommunityLoadResult([], e)
