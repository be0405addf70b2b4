from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from keuthlie.api.schemas import (
    Envelope,
    LoginRequest,
    PasswordChangeRequest,
    RegisterRequest,
    RevokeRequest,
    VerifyTokenRequest,
)
from keuthlie.logging import get_logger
from keuthlie.service.runtime import Runtime

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v0/auth", tags=["auth"])

# Handlers are plain ``def``: argon2 and RSA work block, so FastAPI runs them
# on its worker threadpool instead of the event loop.


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


@router.post(
    "/register/email", response_model=Envelope, response_model_exclude_none=True
)
def register_email(body: RegisterRequest, runtime: Runtime = Depends(get_runtime)):
    """Create an identity from e-mail, username and password."""
    identity_id = runtime.auth.register(
        username=body.username, email=body.email, password=body.password
    )
    return Envelope.ok({"uuid": identity_id})


@router.post("/login/email", response_model=Envelope, response_model_exclude_none=True)
def login_email(body: LoginRequest, runtime: Runtime = Depends(get_runtime)):
    """Exchange e-mail and password for a signed token scoped to ``service``."""
    result = runtime.auth.login(
        email=body.email, password=body.password, service=body.service
    )
    return Envelope.ok({"id": result.identity_id, "token": result.token})


@router.post("/verifyToken", response_model=Envelope, response_model_exclude_none=True)
def verify_token(body: VerifyTokenRequest, runtime: Runtime = Depends(get_runtime)):
    identity_id = runtime.auth.verify_token(body.token)
    return Envelope.ok({"id": identity_id})


@router.post(
    "/password/change", response_model=Envelope, response_model_exclude_none=True
)
def change_password(
    body: PasswordChangeRequest, runtime: Runtime = Depends(get_runtime)
):
    """Replace the password; every token issued before the change stops verifying."""
    identity_id = runtime.auth.change_password(
        email=body.email, password=body.password, new_password=body.new_password
    )
    return Envelope.ok({"id": identity_id})


@router.post("/revoke", response_model=Envelope, response_model_exclude_none=True)
def revoke_all(body: RevokeRequest, runtime: Runtime = Depends(get_runtime)):
    """Invalidate every outstanding token of the authenticated identity."""
    identity_id = runtime.auth.revoke_all(email=body.email, password=body.password)
    return Envelope.ok({"id": identity_id})
