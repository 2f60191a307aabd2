from typing import Literal

from pydantic import BaseModel, ConfigDict

from storefront.models.schemas import RegisterRequest, Session, User
from storefront.services.errors import ApiError, error_message
from storefront.services.gateway import ApiGateway
from storefront.stores.base import Store
from storefront.utils.logger import get_logger

logger = get_logger(__name__)

AuthStatus = Literal["anonymous", "authenticating", "authenticated"]


class AuthState(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: User | None = None
    token: str | None = None
    status: AuthStatus = "anonymous"
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    @property
    def is_loading(self) -> bool:
        return self.status == "authenticating"

    @property
    def session(self) -> Session:
        return Session(user=self.user, token=self.token)


class AuthStore(Store[AuthState]):
    """
    Current shopper session.

    anonymous -> authenticating -> authenticated -> anonymous. A 401 seen by
    the gateway on an authenticated call drops the store back to anonymous.
    """

    def __init__(self, gateway: ApiGateway):
        super().__init__(AuthState())
        self.gateway = gateway
        self._generation = 0
        gateway.on_unauthenticated(self._session_rejected)

    @property
    def user(self) -> User | None:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    async def login(self, email: str, password: str):
        await self._authenticate(self.gateway.login(email, password), "Login failed")

    async def register(self, profile: RegisterRequest):
        await self._authenticate(self.gateway.register(profile), "Registration failed")

    async def _authenticate(self, call, fallback: str):
        self._set(status="authenticating", error=None)
        try:
            session = await call
            await self.gateway.set_auth_token(session.token)
            await self.gateway.set_current_user(session.user)
        except ApiError as exc:
            logger.info(f"{fallback}: {exc!r}")
            self._set(user=None, token=None, status="anonymous", error=error_message(exc, fallback))
            raise
        except Exception:
            logger.exception(fallback)
            self._set(user=None, token=None, status="anonymous", error=fallback)
            raise
        self._generation += 1
        self._set(user=session.user, token=session.token, status="authenticated", error=None)
        logger.debug(f"Signed in as user {session.user.id}")

    async def logout(self):
        """Forget the session. Memory is cleared before storage; no network call."""
        self._generation += 1
        self._set(user=None, token=None, status="anonymous", error=None)
        await self.gateway.remove_auth_token()

    async def refresh_user(self):
        """Re-read the profile so role changes show up. Any failure signs out."""
        if not self.is_authenticated:
            return
        generation = self._generation
        try:
            user = await self.gateway.get_current_user()
        except ApiError as exc:
            if generation != self._generation:
                return
            logger.warning(f"Profile refresh failed, signing out: {exc!r}")
            await self.logout()
            return
        # The session this refresh started under has ended.
        if generation != self._generation:
            logger.debug("Discarding profile of an ended session")
            return
        self._set(user=user)
        await self.gateway.set_current_user(user)
        if generation != self._generation and not self.is_authenticated:
            # logout cleared storage while we were writing to it
            await self.gateway.remove_auth_token()

    async def rehydrate(self):
        """
        Restore a persisted session without asking the backend.

        Optimistic: a stale token is only discovered by the next
        authenticated call, which then tears the session down.
        """
        token = await self.gateway.storage.get_token()
        user = await self.gateway.get_current_user_from_storage()
        # A login that finished while we were reading storage wins.
        if self.state.status != "anonymous":
            return
        if token and user:
            self._generation += 1
            self._set(user=user, token=token, status="authenticated")
            logger.debug(f"Restored session for user {user.id}")

    def clear_error(self):
        self._set(error=None)

    def _session_rejected(self):
        if self.is_authenticated:
            logger.info("Session rejected by server")
        self._generation += 1
        self._set(user=None, token=None, status="anonymous")

    # -- Role checks --

    def has_role(self, role: str) -> bool:
        return self.is_authenticated and self.user.has_role(role)

    def is_admin(self) -> bool:
        return self.has_role("ADMIN")

    def is_seller(self) -> bool:
        return self.has_role("SELLER")

    def is_customer(self) -> bool:
        return self.has_role("CUSTOMER")
