import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skytour.core.config import settings
from skytour.core.exceptions import DomainError
from skytour.core.logging import setup_logging
from skytour.api.v1.api import api_router

setup_logging()
logger = logging.getLogger(__name__)

# interactive docs are off in production
_docs = settings.ENV != "production"
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs" if _docs else None,
    redoc_url="/redoc" if _docs else None,
    openapi_url="/openapi.json" if _docs else None,
)

# CORS_ORIGINS is comma-separated; the booking site and admin console run on :3000 locally
_default_origins = ["http://127.0.0.1:3000", "http://localhost:3000"]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    # Routes translate known errors themselves; this catches the rest with the same body shape
    logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
