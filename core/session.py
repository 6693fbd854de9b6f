# core/session.py
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import FetchError, FormatError, MarketplaceError
from .filters import (
    ALL_MODELS,
    ALL_PRICES,
    TAB_ALL,
    TAB_COMMUNITY,
    TABS,
    filter_prompts,
)
from .logger import get_logger
from .models import MarketplacePrompt
from .plans import Capability, Plan, has_capability, parse_plan

logger = get_logger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
AUTH_EVENTS = (SIGNED_IN, SIGNED_OUT, USER_UPDATED, TOKEN_REFRESHED)

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_EMPTY = "empty"
STATUS_ERROR = "error"

COMMUNITY_ERROR_MESSAGE = "Community prompts could not be loaded right now. Your own prompts are still available."


@dataclass
class AuthSession:
    """
    Process-wide sign-in state, passed explicitly to whatever needs it.
    apply_auth_event() is the only writer; it is meant to be wired to the
    auth provider's state-change callback.
    """
    user_id: Optional[str] = None
    email: Optional[str] = None
    plan: Optional[Plan] = None
    _listeners: List[Callable[["AuthSession"], None]] = field(default_factory=list, repr=False)

    @property
    def is_signed_in(self) -> bool:
        return self.user_id is not None

    def subscribe(self, listener: Callable[["AuthSession"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply_auth_event(self, event: str, user: Optional[Mapping[str, Any]] = None) -> None:
        if event not in AUTH_EVENTS:
            raise ValueError(f"Unknown auth event {event!r}")

        if event == SIGNED_OUT:
            self.user_id = None
            self.email = None
            self.plan = None
        else:
            if not user or not user.get("id"):
                raise ValueError(f"{event} requires a user with an id")
            self.user_id = str(user["id"])
            self.email = user.get("email")
            # a signed-in user without a stored plan is on the free tier
            self.plan = parse_plan(user.get("plan")) or Plan.FREE

        logger.debug("Auth event %s -> user=%s plan=%s", event, self.user_id, self.plan)
        for listener in list(self._listeners):
            listener(self)

    def can(self, capability: Capability) -> bool:
        return has_capability(self.plan if self.is_signed_in else None, capability)


class CommunityLoad:
    """Handle for one in-flight community import."""

    def __init__(self, generation: int):
        self.generation = generation
        self.future: Optional[Future] = None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()
        if self.future is not None:
            self.future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def result(self, timeout: Optional[float] = None):
        return self.future.result(timeout=timeout)


class MarketplaceState:
    """
    In-memory store behind the marketplace listing: the two prompt lists,
    the community import status and the current selection.

    Community imports run on an executor. Only the most recent, uncancelled
    load may write its result; anything else is discarded when it arrives.
    """

    def __init__(
        self,
        user_prompts: Optional[List[MarketplacePrompt]] = None,
        loader: Optional[Callable[[], Any]] = None,
        executor: Optional[Executor] = None,
    ):
        self.user_prompts: List[MarketplacePrompt] = list(user_prompts or [])
        self.community_prompts: List[MarketplacePrompt] = []
        self.community_status = STATUS_IDLE
        self.community_error: Optional[MarketplaceError] = None

        self.tab = TAB_ALL
        self.search = ""
        self.model = ALL_MODELS
        self.price = ALL_PRICES
        self.sort: Optional[str] = None

        self._loader = loader
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[CommunityLoad] = None
        self._closed = False

    def select(self, **selection: Any) -> None:
        allowed = {"tab", "search", "model", "price", "sort"}
        unknown = set(selection) - allowed
        if unknown:
            raise TypeError(f"Unknown selection field(s): {sorted(unknown)}")
        tab = selection.get("tab", self.tab)
        if tab not in TABS:
            raise ValueError(f"Unknown tab {tab!r}; expected one of {TABS}")
        for name, value in selection.items():
            setattr(self, name, value)

    def visible_prompts(self) -> List[MarketplacePrompt]:
        return filter_prompts(
            self.user_prompts,
            self.community_prompts,
            tab=self.tab,
            search=self.search,
            model=self.model,
            price=self.price,
            sort=self.sort,
        )

    def error_banner(self) -> Optional[str]:
        if self.community_status != STATUS_ERROR:
            return None
        if self.tab not in (TAB_ALL, TAB_COMMUNITY):
            return None
        return COMMUNITY_ERROR_MESSAGE

    def start_community_load(self) -> CommunityLoad:
        if self._loader is None:
            raise RuntimeError("MarketplaceState has no community loader configured")

        with self._lock:
            if self._closed:
                raise RuntimeError("MarketplaceState is closed")
            if self._current is not None:
                self._current.cancel()
            self._generation += 1
            handle = CommunityLoad(self._generation)
            self._current = handle
            self.community_status = STATUS_LOADING
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="community-load")

        handle.future = self._executor.submit(self._run_load, handle)
        return handle

    def _run_load(self, handle: CommunityLoad) -> None:
        if handle.cancelled:
            return
        try:
            result = self._loader()
        except Exception:
            with self._lock:
                if handle is self._current:
                    self._current = None
                    self.community_status = STATUS_ERROR
            raise
        self._apply_load_result(handle, result.prompts, result.error)

    def _apply_load_result(
        self,
        handle: CommunityLoad,
        prompts: List[MarketplacePrompt],
        error: Optional[MarketplaceError],
    ) -> bool:
        with self._lock:
            if handle.cancelled or handle is not self._current or self._closed:
                logger.debug("Discarding result of stale community load #%d.", handle.generation)
                return False

            self._current = None
            if error is not None:
                self.community_prompts = []
                self.community_error = error
                self.community_status = STATUS_ERROR
                if isinstance(error, FormatError):
                    kind = "format"
                elif isinstance(error, FetchError):
                    kind = "fetch"
                else:
                    kind = type(error).__name__
                logger.warning("Community load #%d failed (%s error).", handle.generation, kind)
            else:
                self.community_prompts = list(prompts)
                self.community_error = None
                self.community_status = STATUS_READY if prompts else STATUS_EMPTY
                logger.info("Community load #%d stored %d prompts.", handle.generation, len(prompts))
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._current is not None:
                self._current.cancel()
                self._current = None
            if self.community_status == STATUS_LOADING:
                self.community_status = STATUS_IDLE
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def summary(self) -> Dict[str, Any]:
        return {
            "user": len(self.user_prompts),
            "community": len(self.community_prompts),
            "status": self.community_status,
        }
