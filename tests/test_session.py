"""Tests for auth session state and the marketplace state store."""
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from unittest.mock import MagicMock

from core.errors import FetchError, FormatError
from core.plans import Capability, Plan
from core.session import (
    AuthSession,
    COMMUNITY_ERROR_MESSAGE,
    MarketplaceState,
    STATUS_EMPTY,
    STATUS_ERROR,
    STATUS_IDLE,
    STATUS_LOADING,
    STATUS_READY,
)
from fetchers.community import CommunityLoadResult


class TestAuthSession:

    def test_starts_anonymous(self):
        session = AuthSession()
        assert not session.is_signed_in
        assert session.can(Capability.BROWSE_MARKETPLACE)
        assert not session.can(Capability.UPLOAD_PROMPT)

    def test_sign_in_and_out(self):
        session = AuthSession()
        session.apply_auth_event("SIGNED_IN", {"id": "u-1", "email": "a@b.c", "plan": "pro"})

        assert session.is_signed_in
        assert session.plan is Plan.PRO
        assert session.can(Capability.MANAGE_TEAMS)

        session.apply_auth_event("SIGNED_OUT")
        assert not session.is_signed_in
        assert session.plan is None
        assert not session.can(Capability.MANAGE_TEAMS)

    def test_missing_plan_defaults_to_free(self):
        session = AuthSession()
        session.apply_auth_event("SIGNED_IN", {"id": "u-1"})
        assert session.plan is Plan.FREE

    def test_user_updated_changes_plan(self):
        session = AuthSession()
        session.apply_auth_event("SIGNED_IN", {"id": "u-1", "plan": "free"})
        session.apply_auth_event("USER_UPDATED", {"id": "u-1", "plan": "admin"})
        assert session.can(Capability.ADMIN_CONSOLE)

    def test_listeners_are_notified(self):
        session = AuthSession()
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)

        session.apply_auth_event("SIGNED_IN", {"id": "u-1"})
        listener.assert_called_once_with(session)

        unsubscribe()
        session.apply_auth_event("SIGNED_OUT")
        assert listener.call_count == 1

    def test_rejects_unknown_event(self):
        with pytest.raises(ValueError):
            AuthSession().apply_auth_event("PASSWORD_RECOVERY")

    def test_sign_in_requires_user(self):
        with pytest.raises(ValueError):
            AuthSession().apply_auth_event("SIGNED_IN", {})


class TestMarketplaceSelection:

    def test_visible_prompts_use_selection(self, user_prompts):
        state = MarketplaceState(user_prompts=user_prompts)
        state.select(tab="userUploads", model="chatgpt-4", sort="price-desc")
        assert [p.id for p in state.visible_prompts()] == ["u1", "u3"]

    def test_rejects_unknown_field(self):
        with pytest.raises(TypeError):
            MarketplaceState().select(colour="blue")

    def test_rejects_unknown_tab(self):
        with pytest.raises(ValueError):
            MarketplaceState().select(tab="featured")


class TestCommunityLoad:

    def _state(self, user_prompts, result, executor=None):
        return MarketplaceState(user_prompts=user_prompts, loader=lambda: result, executor=executor)

    def test_successful_load(self, user_prompts, community_prompts):
        with self._state(user_prompts, CommunityLoadResult(community_prompts)) as state:
            state.start_community_load().result(timeout=5)

            assert state.community_status == STATUS_READY
            assert [p.id for p in state.visible_prompts()] == ["u1", "u2", "u3", "c1", "c2"]
            assert state.error_banner() is None

    def test_empty_load(self, user_prompts):
        with self._state(user_prompts, CommunityLoadResult([])) as state:
            state.start_community_load().result(timeout=5)
            assert state.community_status == STATUS_EMPTY
            assert state.error_banner() is None

    def test_format_error_keeps_user_prompts(self, user_prompts):
        err = FormatError("missing prompt", missing_columns=["prompt"])
        with self._state(user_prompts, CommunityLoadResult([], err)) as state:
            state.start_community_load().result(timeout=5)

            assert state.community_status == STATUS_ERROR
            assert state.community_error is err
            assert state.community_prompts == []
            assert [p.id for p in state.visible_prompts()] == ["u1", "u2", "u3"]

    def test_error_banner_scoped_to_community_tabs(self, user_prompts):
        with self._state(user_prompts, CommunityLoadResult([], FetchError("down", 503))) as state:
            state.start_community_load().result(timeout=5)

            assert state.error_banner() == COMMUNITY_ERROR_MESSAGE
            state.select(tab="community")
            assert state.error_banner() == COMMUNITY_ERROR_MESSAGE
            state.select(tab="userUploads")
            assert state.error_banner() is None

    def test_superseded_load_is_discarded(self, user_prompts, community_prompts):
        release = threading.Event()
        calls = []

        def loader():
            calls.append(1)
            if len(calls) == 1:
                release.wait(5)
                return CommunityLoadResult(community_prompts[:1])
            return CommunityLoadResult(community_prompts)

        executor = ThreadPoolExecutor(max_workers=2)
        state = MarketplaceState(user_prompts=user_prompts, loader=loader, executor=executor)
        try:
            first = state.start_community_load()
            while not calls:
                time.sleep(0.01)
            second = state.start_community_load()
            second.result(timeout=5)
            release.set()
            first.result(timeout=5)

            assert first.cancelled
            assert [p.id for p in state.community_prompts] == ["c1", "c2"]
            assert state.community_status == STATUS_READY
        finally:
            executor.shutdown(wait=True)

    def test_close_discards_late_result(self, user_prompts, community_prompts):
        release = threading.Event()
        started = threading.Event()

        def loader():
            started.set()
            release.wait(5)
            return CommunityLoadResult(community_prompts)

        executor = ThreadPoolExecutor(max_workers=1)
        state = MarketplaceState(user_prompts=user_prompts, loader=loader, executor=executor)
        try:
            handle = state.start_community_load()
            started.wait(5)
            assert state.community_status == STATUS_LOADING

            state.close()
            release.set()
            handle.result(timeout=5)

            assert handle.cancelled
            assert state.community_prompts == []
            assert state.community_status == STATUS_IDLE
        finally:
            executor.shutdown(wait=True)

    def test_start_after_close_fails(self, user_prompts):
        state = self._state(user_prompts, CommunityLoadResult([]))
        state.close()
        with pytest.raises(RuntimeError):
            state.start_community_load()

    def test_requires_loader(self):
        with pytest.raises(RuntimeError):
            MarketplaceState().start_community_load()

    def test_loader_crash_marks_error(self, user_prompts):
        def loader():
            raise RuntimeError("bug")

        with MarketplaceState(user_prompts=user_prompts, loader=loader) as state:
            handle = state.start_community_load()
            with pytest.raises(RuntimeError):
                handle.result(timeout=5)
            assert state.community_status == STATUS_ERROR
