from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from workorbit.core.config import settings
from workorbit.core.database import get_db
from workorbit.auth.schemas import (
    AdminRegistration,
    AdminRegistrationEnvelope,
    LoginEnvelope,
    RefreshTokenRequest,
    StaffRegistration,
    StaffRegistrationEnvelope,
    Token,
    UserLogin,
    UserResponse
)
from workorbit.auth.service import AuthService, LoginFailure
from workorbit.core.enums import UserStatus
from workorbit.core.exceptions import AccountLockedError, AuthenticationError, InvalidTokenError
from workorbit.core.security import verify_token
from workorbit.core.dependencies import get_current_user
from workorbit.notifications.service import notification_dispatcher

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register/admin", response_model=AdminRegistrationEnvelope, status_code=status.HTTP_201_CREATED)
async def register_admin(data: AdminRegistration, db: Session = Depends(get_db)):
    """Register an admin together with a new organization."""
    auth_service = AuthService(db)
    admin, organization = auth_service.register_admin(data)
    return {
        "success": True,
        "message": "Admin and organization created successfully",
        "data": {"user": admin, "organization": organization, **auth_service.create_tokens(admin)}
    }


@router.post("/register/staff", response_model=StaffRegistrationEnvelope, status_code=status.HTTP_201_CREATED)
async def register_staff(data: StaffRegistration, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """Register HR, manager or employee; the account stays pending until approved."""
    auth_service = AuthService(db)
    user, join_request, organization = auth_service.register_staff(data)

    background_tasks.add_task(
        notification_dispatcher.notify_employee_registered,
        organization.id,
        user.id,
        user.name,
        user.email,
        user.role.value,
        user.department
    )

    return {
        "success": True,
        "message": f"{user.role.value} registration successful. Waiting for approval.",
        "data": {
            "user": user,
            "join_request_id": join_request.id,
            "request_status": join_request.status.value,
            **auth_service.create_tokens(user)
        }
    }


def _alert_failed_login(failure: LoginFailure, client_ip: str):
    """Security alerts for the organization admin; dispatch never raises."""
    user = failure.user
    if not user.organization_id:
        return

    if failure.attempts >= settings.failed_login_alert_threshold:
        notification_dispatcher.notify_failed_login_attempts(
            user.organization_id, user.email, failure.attempts, client_ip
        )

    if failure.locked:
        notification_dispatcher.notify_account_lockout(
            user.organization_id, user.id, user.email, settings.lock_time_minutes, user.lock_until
        )


@router.post("/login", response_model=LoginEnvelope)
async def login_user(login_data: UserLogin, request: Request, db: Session = Depends(get_db)):
    """Login user and return JWT tokens."""
    auth_service = AuthService(db)
    try:
        user = auth_service.authenticate_user(login_data)
    except (AuthenticationError, AccountLockedError):
        if auth_service.last_failure is not None:
            client_ip = request.client.host if request.client else None
            await run_in_threadpool(_alert_failed_login, auth_service.last_failure, client_ip)
        raise

    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": user, **auth_service.create_tokens(user)}
    }


@router.post("/refresh", response_model=Token)
async def refresh_token(body: RefreshTokenRequest, db: Session = Depends(get_db)):
    """Refresh access token using refresh token."""
    payload = verify_token(body.refresh_token, "refresh")

    auth_service = AuthService(db)
    user = auth_service.get_user_by_id(payload.get("sub"))

    if not user or UserStatus(user.status) is UserStatus.INACTIVE:
        raise InvalidTokenError("User not found or inactive")

    return auth_service.create_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user=Depends(get_current_user)):
    """Get current user information."""
    return current_user
