"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The access gate for protected routes. One auth method is accepted:
  Authorization: Bearer <token> -- a JWT issued by POST /api/v1/auth/login.

get_current_identity() validates the token and returns its claims.
get_current_user() wraps it and resolves the subject to a stored User.

On any rejection the dependency raises UnauthenticatedError before the
route body runs. api/main.py turns every UnauthenticatedError subtype into
the same 401 response.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request/HTTPException)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import TokenClaims, User
from auth.store import UserStore
from auth.tokens import TokenValidator


def get_current_identity(request: Request) -> TokenClaims:
    """Require a valid bearer token. Raises UnauthenticatedError otherwise.

    The accepted claims are also placed on request.state.identity so
    middleware and handlers further down can read the subject.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: TokenClaims = Depends(get_current_identity)): ...
    """
    validator: TokenValidator = request.app.state.token_validator
    claims = validator.validate_header(request.headers.get("Authorization"))
    request.state.identity = claims
    return claims


def get_current_user(request: Request) -> User:
    """Require a valid bearer token and load the account it names.

    Raises HTTP 404 if the subject no longer exists. An inactive account is
    still returned: token validity is independent of account state.
    """
    claims = get_current_identity(request)
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.subject)
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Account not found."},
        )
    return user
