"""
Authentication endpoints – name/password and email OTP flows, JWT tokens.

Handlers normalize the email, talk to the OTP manager, and only then
touch the database or the mailer; nothing here holds the manager's
lock across I/O.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from app import db
from app.dependencies import SESSION_COOKIE, CurrentUser, issue_session
from app.models import (
    AuthResponse,
    EmailLoginRequest,
    EmailRegisterRequest,
    EmailVerifyLoginRequest,
    EmailVerifyRequest,
    LoginRequest,
    MessageResponse,
    NameAvailability,
    OtpSentResponse,
    PasswordForgotRequest,
    PasswordResetRequest,
    ProfileResponse,
    RegisterRequest,
    StatusResponse,
    UserInfo,
)
from app.rate_limit import AUTH, STRICT, limiter
from app.security import hash_password, verify_password
from app.services.email import (
    send_otp_email,
    send_password_reset_email,
    send_welcome_email,
)
from app.services.otp import OtpGenerationError, normalize_identity, otp_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ── Helpers ───────────────────────────────────────────────────────────────


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _issue_code(identity: str) -> str:
    try:
        return otp_manager.issue(identity)
    except OtpGenerationError:
        logger.exception("Could not generate OTP for %s", identity)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not generate a verification code. Please try again.",
        ) from None


def _check_code(identity: str, otp: str) -> None:
    """Raise 400 with the verdict message unless *otp* is valid."""
    result = otp_manager.verify(identity, otp)
    if not result.valid:
        raise _bad_request(result.message)


def _duplicate_message(field: str) -> str:
    if field == "email":
        return "An account with this email already exists"
    return "This name is already taken. Please choose a different name."


def _auth_response(
    response: Response,
    user: UserInfo,
    message: str,
    **extra,
) -> AuthResponse:
    token = issue_session(response, user.id)
    return AuthResponse(message=message, token=token, user=user, **extra)


# ══════════════════════════════════════════════════════════════════════════
#                          NAME / PASSWORD
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="register",
    summary="Register a new user with name and password",
)
async def register(body: RegisterRequest, response: Response) -> AuthResponse:
    name = body.name.strip()
    if await db.name_taken(name):
        raise _bad_request("User with this name already exists")

    try:
        user = await db.create_user(
            name,
            auth_method="password",
            password_hash=hash_password(body.password),
        )
    except db.DuplicateUserError:
        raise _bad_request("User with this name already exists") from None

    user = await db.record_login(user.id) or user
    return _auth_response(response, user, f"User registered successfully! Welcome, {user.name}!")


@router.post(
    "/login",
    response_model=AuthResponse,
    operation_id="login",
    summary="Authenticate with name and password",
)
@limiter.limit(AUTH)
async def login(request: Request, body: LoginRequest, response: Response) -> AuthResponse:
    user = await db.get_user_by_name(body.name.strip(), active_only=True)
    password_hash = await db.get_password_hash(user.id) if user else None

    if user is None or not verify_password(body.password, password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials. Please check your name and password.",
        )

    user = await db.record_login(user.id) or user
    return _auth_response(response, user, f"Welcome back, {user.name}!")


@router.get(
    "/check-name/{name}",
    response_model=NameAvailability,
    operation_id="checkName",
    summary="Check whether a display name is available",
)
async def check_name(name: str) -> NameAvailability:
    name = name.strip()
    if len(name) < 2:
        return NameAvailability(
            available=False,
            message="Name must be at least 2 characters long",
        )
    taken = await db.name_taken(name)
    return NameAvailability(
        available=not taken,
        message="Name already taken" if taken else "Name available",
    )


# ══════════════════════════════════════════════════════════════════════════
#                             EMAIL OTP
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/email/register",
    response_model=OtpSentResponse,
    operation_id="emailRegister",
    summary="Start an email registration and send a verification code",
)
@limiter.limit(STRICT)
async def email_register(request: Request, body: EmailRegisterRequest) -> OtpSentResponse:
    identity = normalize_identity(body.email)
    name = body.name.strip()

    if await db.get_user_by_email(identity):
        raise _bad_request(_duplicate_message("email"))
    if await db.name_taken(name):
        raise _bad_request(_duplicate_message("name"))

    code = _issue_code(identity)
    delivery = await send_otp_email(identity, code, name)
    if not delivery.success:
        # The code stays valid until it expires; the user may still use it.
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification email. Please try again.",
        )

    return OtpSentResponse(
        message=f"Verification code sent to {identity}",
        email=identity,
        name=name,
        expires_in_seconds=otp_manager.ttl_seconds,
    )


@router.post(
    "/email/verify",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="emailVerify",
    summary="Verify the code and complete the email registration",
)
@limiter.limit(AUTH)
async def email_verify(
    request: Request,
    body: EmailVerifyRequest,
    response: Response,
) -> AuthResponse:
    identity = normalize_identity(body.email)
    _check_code(identity, body.otp)

    name = body.name.strip()
    try:
        user = await db.create_user(
            name,
            auth_method="email_otp",
            email=identity,
            is_email_verified=True,
        )
    except db.DuplicateUserError as exc:
        raise _bad_request(_duplicate_message(exc.field)) from None

    welcome = await send_welcome_email(identity, name)
    if not welcome.success:
        logger.warning("Welcome email to %s failed; registration still succeeded", identity)

    user = await db.record_login(user.id) or user
    return _auth_response(
        response,
        user,
        f"Email verified successfully! Welcome, {user.name}!",
        welcome_email_sent=welcome.success,
    )


@router.post(
    "/email/login",
    response_model=OtpSentResponse,
    operation_id="emailLogin",
    summary="Send a login code to a registered email",
)
@limiter.limit(STRICT)
async def email_login(request: Request, body: EmailLoginRequest) -> OtpSentResponse:
    identity = normalize_identity(body.email)
    user = await db.get_user_by_email(identity, active_only=True)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email. Please register first.",
        )

    code = _issue_code(identity)
    delivery = await send_otp_email(identity, code, user.name)
    if not delivery.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification email. Please try again.",
        )

    return OtpSentResponse(
        message=f"Verification code sent to {identity}",
        email=identity,
        name=user.name,
        expires_in_seconds=otp_manager.ttl_seconds,
    )


@router.post(
    "/email/verify-login",
    response_model=AuthResponse,
    operation_id="emailVerifyLogin",
    summary="Verify a login code and receive a token",
)
@limiter.limit(AUTH)
async def email_verify_login(
    request: Request,
    body: EmailVerifyLoginRequest,
    response: Response,
) -> AuthResponse:
    identity = normalize_identity(body.email)
    _check_code(identity, body.otp)

    user = await db.get_user_by_email(identity, active_only=True)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email. Please register first.",
        )

    user = await db.record_login(user.id) or user
    return _auth_response(response, user, f"Welcome back, {user.name}!")


# ══════════════════════════════════════════════════════════════════════════
#                           PASSWORD RESET
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/password/forgot",
    response_model=MessageResponse,
    operation_id="forgotPassword",
    summary="Send a password reset code",
)
@limiter.limit(STRICT)
async def forgot_password(request: Request, body: PasswordForgotRequest) -> MessageResponse:
    # Reset codes share the store, key and lifetime with login codes.
    identity = normalize_identity(body.email)
    user = await db.get_user_by_email(identity, active_only=True)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email.",
        )

    code = _issue_code(identity)
    delivery = await send_password_reset_email(identity, code, user.name)
    if not delivery.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send password reset email. Please try again.",
        )

    return MessageResponse(message=f"Password reset code sent to {identity}")


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    operation_id="resetPassword",
    summary="Set a new password using a reset code",
)
@limiter.limit(AUTH)
async def reset_password(request: Request, body: PasswordResetRequest) -> MessageResponse:
    identity = normalize_identity(body.email)
    _check_code(identity, body.otp)

    user = await db.get_user_by_email(identity, active_only=True)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email.",
        )

    await db.set_password(user.id, hash_password(body.new_password))
    logger.info("Password reset for user %s", user.id)
    return MessageResponse(message="Password has been reset successfully")


# ══════════════════════════════════════════════════════════════════════════
#                               COMMON
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/profile",
    response_model=ProfileResponse,
    operation_id="getProfile",
    summary="Get the current user's profile",
)
async def get_profile(current_user: CurrentUser) -> ProfileResponse:
    return ProfileResponse(data=current_user)


@router.get(
    "/status",
    response_model=StatusResponse,
    operation_id="getStatus",
    summary="Check authentication status",
)
async def get_status(current_user: CurrentUser) -> StatusResponse:
    return StatusResponse(data=current_user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Clear the session cookie",
)
async def logout(current_user: CurrentUser, response: Response) -> MessageResponse:
    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message="Logged out successfully")
