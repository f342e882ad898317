from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from .error import ClientError, ServerError
from src.domain.exceptions import InvitationError
import logging

logger = logging.getLogger(__name__)

INVITATION_ERROR_STATUS = {
    "INVALID_EMAIL": status.HTTP_400_BAD_REQUEST,
    "INVITABLE_TYPE_UNKNOWN": status.HTTP_400_BAD_REQUEST,
    "INVITATION_TOKEN_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVITATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVITATION_ALREADY_ACCEPTED": status.HTTP_409_CONFLICT,
    "INVITATION_DUPLICATE": status.HTTP_409_CONFLICT,
    "INVITATION_INVALID_STATE": status.HTTP_409_CONFLICT,
    "INVITATION_EXPIRED": status.HTTP_410_GONE,
}


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = {"code": exc.base_error.code, "message": exc.base_error.message}
    logger.warning(f"Client error: {error_dict}")
    return JSONResponse(status_code=exc.status_code, content={"error": error_dict})


async def handle_server_error(request: Request, exc: ServerError):
    error_dict = {"code": exc.base_error.code, "message": "Internal server error"}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": error_dict}
    )


async def handle_invitation_error(request: Request, exc: InvitationError):
    error_dict = exc.to_dict()
    logger.warning(f"Invitation error: {error_dict}")
    return JSONResponse(
        status_code=INVITATION_ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
        content={"error": error_dict},
    )


def create_app(ApplicationConfig) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ApplicationConfig.AUTO_CREATE_TABLES:
            from src.depends import create_db_and_tables

            await create_db_and_tables()
        yield

    app = FastAPI(title="Invite-Only API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import admin, audit, invitation

    app.include_router(invitation.router, tags=["Invitations"])
    app.include_router(admin.router, tags=["Admin"])
    app.include_router(audit.router, tags=["Audit"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(InvitationError, handle_invitation_error)

    return app
