"""
api/routes/v1/auth.py -- Registration, login and profile REST endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; 201 with public user view
  POST /api/v1/auth/login     -- password login; 200 with bearer token
  GET  /api/v1/auth/profile   -- current account (requires Bearer token)

Security:
  [C1] login() goes through auth.accounts.login(), which equalizes timing
       across unknown user / wrong password / inactive account. Never inline
       the lookup and verification here.
  [M5] Cache-Control: no-store on register and login responses.
  Error responses are produced by the handlers in api/main.py, which map every
  credential and token failure to one constant body per status.

Threading: register and login are plain `def` handlers. FastAPI runs them in
its worker threadpool, so Argon2 work never blocks the event loop. profile
does no hashing and stays async.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth import accounts
from auth.dependencies import get_current_user
from auth.models import User

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/profile:  requires Bearer token (get_current_user)
router = APIRouter()


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> UserResponse:
    """Register a new account and return its public view (no password fields)."""
    state = request.app.state
    user = accounts.register_user(
        state.user_store,
        state.hasher,
        username=body.username,
        password=body.password,
        email=body.email,
        phone=body.phone,
    )
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return UserResponse.from_public(user)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with username and password; return a bearer token.

    Failure for any reason raises InvalidCredentialsError, rendered by
    api/main.py as one fixed 401 body.
    """
    state = request.app.state
    issued = accounts.login(
        state.user_store,
        state.hasher,
        state.token_issuer,
        username=body.username,
        password=body.password,
    )
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return LoginResponse.from_issued(issued)


@router.get("/auth/profile", response_model=UserResponse)
async def profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the public view of the account named by the bearer token."""
    return UserResponse.from_public(current_user.public())
