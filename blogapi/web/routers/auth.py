from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from blogapi.core.config import Settings
from blogapi.core.errors import ValidationFailed
from blogapi.core.schemas import (
    AccessTokenView,
    ConfirmationCodeInput,
    EmailInput,
    LoginInput,
    MeView,
    NewPasswordInput,
    UserInput,
)
from blogapi.core.security import RefreshClaims, require_refresh_claims, require_user_id
from blogapi.services.auth import AuthService, TokenPair
from blogapi.web.deps import client_ip, device_name, get_auth_service, reject_taken

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(request: Request, pair: TokenPair) -> JSONResponse:
    settings: Settings = request.app.state.settings
    resp = JSONResponse(AccessTokenView(access_token=pair.access_token).model_dump(by_alias=True))
    resp.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        pair.refresh_token,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return resp


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")


@router.post("/login", response_model=AccessTokenView)
async def login(request: Request, body: LoginInput, auth: AuthService = Depends(get_auth_service)):
    user = await auth.check_credentials(body.login_or_email, body.password)
    if not user:
        raise _unauthorized()
    pair = await auth.login(user.id, client_ip(request), device_name(request))
    return _token_response(request, pair)


@router.post("/refresh-token", response_model=AccessTokenView)
async def refresh_token(
    request: Request,
    claims: RefreshClaims = Depends(require_refresh_claims),
    auth: AuthService = Depends(get_auth_service),
):
    pair = await auth.refresh(claims)
    if not pair:
        raise _unauthorized()
    return _token_response(request, pair)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    claims: RefreshClaims = Depends(require_refresh_claims),
    auth: AuthService = Depends(get_auth_service),
):
    if not await auth.logout(claims):
        raise _unauthorized()
    resp = Response(status_code=status.HTTP_204_NO_CONTENT)
    resp.delete_cookie(request.app.state.settings.REFRESH_COOKIE_NAME, path="/")
    return resp


@router.post("/registration", status_code=status.HTTP_204_NO_CONTENT)
async def registration(body: UserInput, auth: AuthService = Depends(get_auth_service)):
    await reject_taken(auth, body.login, body.email)
    if not await auth.register(body.login, body.password, body.email):
        # a concurrent registration took the login or email after the check
        await reject_taken(auth, body.login, body.email)
        raise ValidationFailed.field("login", "login already exists")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/registration-confirmation", status_code=status.HTTP_204_NO_CONTENT)
async def registration_confirmation(body: ConfirmationCodeInput, auth: AuthService = Depends(get_auth_service)):
    if not await auth.confirm_email(body.code):
        raise ValidationFailed.field("code", "The confirmation code is incorrect, expired or already been applied")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/registration-email-resending", status_code=status.HTTP_204_NO_CONTENT)
async def registration_email_resending(body: EmailInput, auth: AuthService = Depends(get_auth_service)):
    if not await auth.resend_confirmation_code(body.email):
        raise ValidationFailed.field("email", "Email is unknown or already confirmed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password-recovery", status_code=status.HTTP_204_NO_CONTENT)
async def password_recovery(body: EmailInput, auth: AuthService = Depends(get_auth_service)):
    await auth.send_password_recovery_code(body.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/new-password", status_code=status.HTTP_204_NO_CONTENT)
async def new_password(body: NewPasswordInput, auth: AuthService = Depends(get_auth_service)):
    if not await auth.confirm_password_recovery(body.recovery_code, body.new_password):
        raise ValidationFailed.field("recoveryCode", "The recovery code is incorrect or expired")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=MeView)
async def me(user_id: str = Depends(require_user_id), auth: AuthService = Depends(get_auth_service)):
    user = await auth.get_user(user_id)
    if not user:
        raise _unauthorized()
    return MeView(email=user.email, login=user.login, user_id=user.id)
