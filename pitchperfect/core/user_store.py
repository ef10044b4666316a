"""
Signed-in user and plan state.

The user, plan and plan expiry survive restarts through device-local storage;
the auth modal state does not.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from pitchperfect.core.local_storage import KeyValueStorage, read_json, write_json
from pitchperfect.core.logging import get_logger, track_event
from pitchperfect.core.store import Store

logger = get_logger(__name__)

USER_STORAGE_KEY = "pitchperfect-user"
SUBSCRIPTION_FUNCTION = "check-subscription"

PERSISTED_FIELDS = ("user", "is_logged_in", "plan", "plan_expires_at")


class UserPlan(str, Enum):
    FREE = "free"
    PASS_48H = "pass_48h"
    PRO = "pro"


class AuthProvider(str, Enum):
    EMAIL = "email"
    GOOGLE = "google"
    GITHUB = "github"


class AuthModalTrigger(str, Enum):
    SAVE = "save"
    COACH = "coach"
    EXPORT = "export"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    avatar: str | None = None
    provider: AuthProvider | None = None


class UserState(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: User | None = None
    is_logged_in: bool = False
    plan: UserPlan = UserPlan.FREE
    plan_expires_at: datetime | None = None
    is_checking_subscription: bool = False
    show_auth_modal: bool = False
    auth_modal_trigger: AuthModalTrigger | None = None


SubscriptionChecker = Callable[[str], Awaitable[dict[str, Any]]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def user_from_auth(auth_user: dict[str, Any]) -> User:
    """Build a User from an auth provider's user payload."""
    email = auth_user.get("email") or ""
    user_metadata = auth_user.get("user_metadata") or {}
    app_metadata = auth_user.get("app_metadata") or {}

    name = (
        user_metadata.get("name")
        or user_metadata.get("full_name")
        or (email.split("@")[0] if email else "")
        or "User"
    )
    provider = app_metadata.get("provider")
    return User(
        id=auth_user["id"],
        email=email,
        name=name,
        avatar=user_metadata.get("avatar_url"),
        provider=provider if provider in {p.value for p in AuthProvider} else None,
    )


async def check_subscription(access_token: str) -> dict[str, Any]:
    """
    Ask the billing backend for the signed-in user's plan.

    Raises:
        EdgeFunctionError: If the check fails
    """
    from pitchperfect.services.edge_functions import invoke_function

    return await invoke_function(SUBSCRIPTION_FUNCTION, json_body={}, access_token=access_token)


def _parse_expiry(body: dict[str, Any]) -> datetime | None:
    raw = body.get("subscription_end") or body.get("pass_expires")
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable plan expiry: {raw!r}")
        return None
    # Billing timestamps without an offset are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class UserStore(Store[UserState]):
    """Process-wide user, plan and auth modal state."""

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        subscription_checker: SubscriptionChecker | None = None,
        clock: Clock = _utcnow,
    ):
        self.storage = storage
        self._subscription_checker = subscription_checker or check_subscription
        self._clock = clock
        super().__init__(self._load_state())
        if storage is not None:
            self.subscribe(self._persist)

    def _load_state(self) -> UserState:
        if self.storage is None:
            return UserState()
        data = read_json(self.storage, USER_STORAGE_KEY)
        if not isinstance(data, dict):
            return UserState()
        try:
            return UserState.model_validate({k: data.get(k) for k in PERSISTED_FIELDS if k in data})
        except ValidationError:
            logger.warning("Ignoring corrupt stored user state")
            return UserState()

    def _persist(self, state: UserState, previous: UserState) -> None:
        data = state.model_dump(mode="json", include=set(PERSISTED_FIELDS))
        if data != previous.model_dump(mode="json", include=set(PERSISTED_FIELDS)):
            write_json(self.storage, USER_STORAGE_KEY, data)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def set_user(self, user: User | None) -> None:
        self.set_state(user=user, is_logged_in=user is not None)

    def login(self, user: User) -> None:
        self.set_state(user=user, is_logged_in=True)
        track_event(
            logger,
            "user_login",
            user_id=user.id,
            provider=user.provider.value if user.provider else None,
        )

    def logout(self) -> None:
        """Clear the user locally and fall back to the free plan."""
        track_event(logger, "user_logout")
        self.set_state(
            user=None,
            is_logged_in=False,
            plan=UserPlan.FREE,
            plan_expires_at=None,
        )

    def set_plan(self, plan: UserPlan, expires_at: datetime | None = None) -> None:
        self.set_state(plan=plan, plan_expires_at=expires_at)

    def open_auth_modal(self, trigger: AuthModalTrigger) -> None:
        self.set_state(show_auth_modal=True, auth_modal_trigger=trigger)

    def close_auth_modal(self) -> None:
        self.set_state(show_auth_modal=False, auth_modal_trigger=None)

    async def check_subscription(self, access_token: str) -> bool:
        """
        Refresh the plan from the billing backend.

        Does nothing when signed out. A failed check keeps the current plan, and
        a reply that arrives after logout or a user switch is ignored.

        Returns:
            True if the plan was refreshed
        """
        user = self.state.user
        if not self.state.is_logged_in or user is None:
            return False

        self.set_state(is_checking_subscription=True)
        try:
            body = await self._subscription_checker(access_token)
        except Exception as e:
            logger.error(f"Failed to check subscription: {e}")
            return False
        finally:
            self.set_state(is_checking_subscription=False)

        if self.state.user is None or self.state.user.id != user.id:
            logger.info("User changed during subscription check, dropping result")
            return False

        try:
            plan = UserPlan(body.get("plan") or UserPlan.FREE.value)
        except ValueError:
            logger.warning(f"Unknown plan in subscription check: {body.get('plan')!r}")
            return False

        self.set_plan(plan, _parse_expiry(body))
        return True

    # -------------------------------------------------------------------------
    # Plan gates
    # -------------------------------------------------------------------------

    @property
    def active_plan(self) -> UserPlan:
        """The plan in effect now; an expired plan counts as free."""
        expires_at = self.state.plan_expires_at
        if expires_at is not None and expires_at <= self._clock():
            return UserPlan.FREE
        return self.state.plan

    def can_access_deep_analysis(self) -> bool:
        return self.active_plan != UserPlan.FREE

    def can_export_without_watermark(self) -> bool:
        return self.active_plan != UserPlan.FREE

    def can_save_history(self) -> bool:
        return self.state.is_logged_in
