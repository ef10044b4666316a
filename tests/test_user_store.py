"""Tests for user and plan state."""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from pitchperfect.core.user_store import (
    USER_STORAGE_KEY,
    AuthModalTrigger,
    AuthProvider,
    User,
    UserPlan,
    UserStore,
    user_from_auth,
)
from pitchperfect.services.edge_functions import EdgeFunctionError

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)

ALICE = User(id="u-1", email="alice@example.com", name="Alice", provider=AuthProvider.GOOGLE)


def _store(storage=None, checker=None):
    return UserStore(storage=storage, subscription_checker=checker, clock=lambda: NOW)


class TestUserFromAuth:
    def test_prefers_metadata_name(self):
        user = user_from_auth(
            {
                "id": "u-1",
                "email": "alice@example.com",
                "user_metadata": {"full_name": "Alice Liddell", "avatar_url": "https://a/x.png"},
                "app_metadata": {"provider": "github"},
            }
        )

        assert user.name == "Alice Liddell"
        assert user.avatar == "https://a/x.png"
        assert user.provider == AuthProvider.GITHUB

    def test_falls_back_to_email_prefix(self):
        user = user_from_auth({"id": "u-2", "email": "bob@example.com"})

        assert user.name == "bob"
        assert user.provider is None

    def test_unknown_provider_dropped(self):
        user = user_from_auth({"id": "u-3", "app_metadata": {"provider": "myspace"}})

        assert user.name == "User"
        assert user.provider is None


class TestActions:
    def test_login_and_logout(self):
        store = _store()
        store.set_plan(UserPlan.PRO)

        store.login(ALICE)
        assert store.state.is_logged_in is True
        assert store.can_save_history() is True

        store.logout()
        assert store.state.user is None
        assert store.state.plan == UserPlan.FREE
        assert store.can_save_history() is False

    def test_auth_modal(self):
        store = _store()

        store.open_auth_modal(AuthModalTrigger.EXPORT)
        assert store.state.show_auth_modal is True
        assert store.state.auth_modal_trigger == AuthModalTrigger.EXPORT

        store.close_auth_modal()
        assert store.state.auth_modal_trigger is None


class TestPlanGates:
    def test_free_plan_locked(self):
        store = _store()

        assert store.can_access_deep_analysis() is False
        assert store.can_export_without_watermark() is False

    def test_paid_plan_unlocked(self):
        store = _store()
        store.set_plan(UserPlan.PASS_48H, NOW + timedelta(hours=10))

        assert store.active_plan == UserPlan.PASS_48H
        assert store.can_access_deep_analysis() is True

    def test_expired_plan_counts_as_free(self):
        store = _store()
        store.set_plan(UserPlan.PASS_48H, NOW - timedelta(minutes=1))

        assert store.active_plan == UserPlan.FREE
        assert store.can_export_without_watermark() is False


class TestPersistence:
    def test_persisted_fields_survive_restart(self, storage):
        store = _store(storage)
        store.login(ALICE)
        store.set_plan(UserPlan.PRO)
        store.open_auth_modal(AuthModalTrigger.SAVE)

        restored = _store(storage)

        assert restored.state.user == ALICE
        assert restored.state.plan == UserPlan.PRO
        assert restored.state.show_auth_modal is False
        assert "show_auth_modal" not in json.loads(storage.get_item(USER_STORAGE_KEY))

    def test_corrupt_storage_ignored(self, storage):
        storage.set_item(USER_STORAGE_KEY, json.dumps({"plan": "platinum"}))

        assert _store(storage).state.plan == UserPlan.FREE


class TestSubscriptionCheck:
    @pytest.mark.asyncio
    async def test_signed_out_skips_check(self):
        checker = AsyncMock()
        store = _store(checker=checker)

        assert await store.check_subscription("token") is False
        checker.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plan_refreshed(self):
        checker = AsyncMock(
            return_value={"plan": "pass_48h", "pass_expires": "2026-05-02T12:00:00Z"}
        )
        store = _store(checker=checker)
        store.login(ALICE)

        assert await store.check_subscription("token") is True

        checker.assert_awaited_once_with("token")
        assert store.state.plan == UserPlan.PASS_48H
        assert store.state.plan_expires_at == datetime(2026, 5, 2, 12, tzinfo=timezone.utc)
        assert store.state.is_checking_subscription is False

    @pytest.mark.asyncio
    async def test_failed_check_keeps_plan(self):
        store = _store(checker=AsyncMock(side_effect=EdgeFunctionError("check-subscription", "boom")))
        store.login(ALICE)
        store.set_plan(UserPlan.PRO)

        assert await store.check_subscription("token") is False

        assert store.state.plan == UserPlan.PRO
        assert store.state.is_checking_subscription is False

    @pytest.mark.asyncio
    async def test_unknown_plan_ignored(self):
        store = _store(checker=AsyncMock(return_value={"plan": "enterprise"}))
        store.login(ALICE)

        assert await store.check_subscription("token") is False
        assert store.state.plan == UserPlan.FREE

    @pytest.mark.asyncio
    async def test_expiry_without_offset_treated_as_utc(self):
        checker = AsyncMock(return_value={"plan": "pro", "subscription_end": "2099-01-01T00:00:00"})
        store = _store(checker=checker)
        store.login(ALICE)

        assert await store.check_subscription("token") is True

        assert store.state.plan_expires_at == datetime(2099, 1, 1, tzinfo=timezone.utc)
        assert store.active_plan == UserPlan.PRO
        assert store.can_access_deep_analysis() is True

    @pytest.mark.asyncio
    async def test_reply_after_logout_ignored(self):
        release = asyncio.Event()

        async def slow_checker(access_token):
            await release.wait()
            return {"plan": "pro"}

        store = _store(checker=slow_checker)
        store.login(ALICE)

        pending = asyncio.create_task(store.check_subscription("token"))
        await asyncio.sleep(0)
        assert store.state.is_checking_subscription is True
        store.logout()
        release.set()

        assert await pending is False
        assert store.state.is_logged_in is False
        assert store.state.plan == UserPlan.FREE
        assert store.state.is_checking_subscription is False
