"""HTTP routes for authentication."""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from auth.config import AuthConfig
from auth.exceptions import InvalidCredentialsError
from auth.service import AuthService
from auth.types import LoginRequest
from api.base import success_response, error_response, ErrorCodes


def create_auth_router(auth_service: AuthService, config: AuthConfig) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/login")
    async def login(body: LoginRequest, response: Response):
        """Check the demo credential.

        Sets the session cookie on success.
        """
        try:
            session = auth_service.login(body.username, body.password)
        except InvalidCredentialsError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_CREDENTIALS,
                    "Invalid username or password",
                ).model_dump(mode="json"),
            )

        response.set_cookie(
            key=config.cookie_name,
            value=session.token,
            httponly=True,
            secure=config.secure_cookie,
            samesite="lax",
            max_age=int((session.expires_at - session.created_at).total_seconds()),
        )

        return success_response({"username": session.username}).model_dump(mode="json")

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        session_token = request.cookies.get(config.cookie_name)

        if session_token:
            auth_service.logout(session_token)

        response.delete_cookie(key=config.cookie_name)

        return success_response({"message": "Logged out successfully"}).model_dump(mode="json")

    @router.get("/me")
    async def get_current_user(request: Request):
        """Current session's user. Requires authentication (middleware sets state)."""
        if not hasattr(request.state, "username"):
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        return success_response({"username": request.state.username}).model_dump(mode="json")

    return router
