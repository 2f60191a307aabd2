import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from storefront.config import settings
from fastapi.middleware.cors import CORSMiddleware
from storefront.api.router import router
from storefront.container import build_storefront
from storefront.services.errors import ApiError
from storefront.utils.logger import get_logger

logger = get_logger(__name__)

ERROR_STATUS = {
    "unauthenticated": 401,
    "server_error": 502,
    "network_failure": 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    storefront = build_storefront(settings)
    app.state.storefront = storefront
    # Rehydration must not hold up startup; requests may arrive before it ends.
    rehydrate = asyncio.create_task(storefront.auth.rehydrate())
    logger.info(f"Storefront client ready, backend at {settings.API_BASE_URL}")
    yield
    if not rehydrate.done():
        rehydrate.cancel()
    await storefront.close()

app = FastAPI(
    title="Storefront client",
    description="Session, cart and catalog state for a storefront backed by an external REST API.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    status = ERROR_STATUS.get(exc.kind) or exc.status_code or 400
    return JSONResponse(status_code=status, content={"detail": exc.message, "kind": exc.kind})


app.include_router(router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
