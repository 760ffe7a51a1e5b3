import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from fst_auth.api.endpoints import (
    admin,
    auth,
    health,
    user,
)
from fst_auth.core.config import settings
from fst_auth.core.errors import AuthError, auth_error_handler, validation_error_handler
from fst_auth.db.base import Base
from fst_auth.db.session import engine

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("%s %s started, %d admin wallet(s) configured",
                settings.PROJECT_NAME, settings.VERSION, len(settings.admin_wallets))
    yield


# Define the FastAPI application instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_exception_handler(AuthError, auth_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# CORS middleware, bearer tokens only so no credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Include your API routers
app.include_router(health.router)
app.include_router(auth.router, prefix="/auth")
app.include_router(user.router)
app.include_router(admin.router, prefix="/admin")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
