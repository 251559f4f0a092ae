from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Request

from app.tally.core.error_catalog import AppError
from app.tally.db.session import get_db
from app.tally.repos.users import UserRepository
from app.tally.schemas.auth import LoginRequest, OAuth2TokenResponse, TokenResponse
from app.tally.services.audit import AuditEventPayload, AuditService
from app.tally.services.auth import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login (JSON)",
    description="Login with email or username_or_email and a password.",
)
def login(request: Request, payload: LoginRequest, db=Depends(get_db)):
    identifier = payload.email or payload.username_or_email
    trace_id = getattr(request.state, "trace_id", "")
    audit = AuditService(db)

    try:
        user, token = AuthService(db).login(identifier, payload.password)
    except AppError as exc:
        candidate = UserRepository(db).get_by_username_or_email(identifier)
        if candidate is not None:
            audit.record_event(
                AuditEventPayload(
                    tenant_id=str(candidate.tenant_id),
                    user_id=str(candidate.id),
                    trace_id=trace_id or None,
                    actor=identifier,
                    action="auth.login.failed",
                    entity_type="user",
                    entity_id=str(candidate.id),
                    before=None,
                    after=None,
                    metadata={"error_code": exc.error.code},
                    result="failure",
                )
            )
        raise

    audit.record_event(
        AuditEventPayload(
            tenant_id=str(user.tenant_id),
            user_id=str(user.id),
            trace_id=trace_id or None,
            actor=user.username,
            action="auth.login",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after=None,
            metadata=None,
            result="success",
            actor_role=user.role,
        )
    )
    return TokenResponse(access_token=token, must_change_password=user.must_change_password, trace_id=trace_id)


@router.post(
    "/token",
    response_model=OAuth2TokenResponse,
    summary="OAuth2 Token",
    description="OAuth2 password flow using form-data username/password.",
)
async def oauth2_token(request: Request, db=Depends(get_db)):
    form_data = parse_qs((await request.body()).decode())
    username = (form_data.get("username") or [""])[0]
    password = (form_data.get("password") or [""])[0]
    _, token = AuthService(db).login(username, password)
    return OAuth2TokenResponse(access_token=token)
