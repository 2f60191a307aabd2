from fastapi import APIRouter, Depends
from storefront.dependencies import get_auth_store
from storefront.models.schemas import AuthRequest, RegisterRequest, SessionInfo
from storefront.stores.auth import AuthStore

router = APIRouter(prefix="/api/session", tags=["session"])


def session_info(auth: AuthStore) -> SessionInfo:
    state = auth.state
    return SessionInfo(
        status=state.status,
        is_authenticated=state.is_authenticated,
        user=state.user,
        is_admin=auth.is_admin(),
        is_seller=auth.is_seller(),
        is_customer=auth.is_customer(),
        error=state.error,
    )


@router.get("", response_model=SessionInfo)
async def current_session(auth: AuthStore = Depends(get_auth_store)):
    return session_info(auth)


# Gateway errors from login/register propagate to the app's ApiError handler.
@router.post("/login", response_model=SessionInfo)
async def login(body: AuthRequest, auth: AuthStore = Depends(get_auth_store)):
    await auth.login(body.email, body.password)
    return session_info(auth)


@router.post("/register", response_model=SessionInfo, status_code=201)
async def register(body: RegisterRequest, auth: AuthStore = Depends(get_auth_store)):
    await auth.register(body)
    return session_info(auth)


@router.post("/logout", response_model=SessionInfo)
async def logout(auth: AuthStore = Depends(get_auth_store)):
    await auth.logout()
    return session_info(auth)


@router.post("/refresh", response_model=SessionInfo)
async def refresh(auth: AuthStore = Depends(get_auth_store)):
    await auth.refresh_user()
    return session_info(auth)
