"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.api.dependencies import get_reimbursement_service, optional_auth
from app.api.router import api_router
from app.config import settings
from app.db.session import engine
from app.db.base import Base
from app.services.authenticator import Authenticated
from app.services.reconciler import InFlightRegistry
from app.services.reimbursement_service import ReimbursementService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Startup: Create database tables
    Base.metadata.create_all(bind=engine)
    app.state.inflight_registry = InFlightRegistry(settings.USER_CREATION_GRACE_SECONDS)
    logger.info(f"{settings.APP_NAME} started, allowed domain: {settings.ALLOWED_DOMAIN}")
    yield


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Internal back-office API: Google sign-in, reimbursements and out-of-office tracking.",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Signed cookie carrying the browser session
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_COOKIE_SECURE,
    )

    # Include API router
    app.include_router(api_router)

    return app


app = create_application()


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/dashboard", tags=["Dashboard"])
def dashboard(
    auth: Optional[Authenticated] = Depends(optional_auth),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
):
    """Landing data; personalized when the caller is signed in."""
    if auth is None:
        return {"authenticated": False, "loginUrl": settings.LOGIN_URL}

    return {
        "authenticated": True,
        "user": {"id": auth.user.id, "name": auth.user.name, "email": auth.user.email},
        "reimbursements": reimbursement_service.count_by_status(auth.user.id),
    }
