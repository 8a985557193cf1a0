from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from workorbit.auth.models import User
from workorbit.auth.schemas import AdminRegistration, StaffRegistration, UserLogin
from workorbit.core.config import settings
from workorbit.core.database import utcnow
from workorbit.core.enums import RequestType, RequestedRole, RequestStatus, UserRole, UserStatus
from workorbit.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ResourceInactiveError,
    ResourceNotFoundError,
    ValidationError
)
from workorbit.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token
)
from workorbit.core.service_base import BaseService
from workorbit.core.validators import validate_password, validate_phone
from workorbit.hierarchy.codes import generate_org_code, is_valid_hr_code, is_valid_org_code
from workorbit.hierarchy.models import JoinRequest
from workorbit.organizations.models import Organization, HRManager


@dataclass
class LoginFailure:
    """Bookkeeping of a rejected login, used to decide which alerts to raise."""

    user: User
    attempts: int
    locked: bool


class AuthService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.last_failure: Optional[LoginFailure] = None

    def register_admin(self, data: AdminRegistration):
        """Create an active admin and the organization it owns."""
        validate_password(data.password)
        email = data.email.lower()
        self.check_unique_constraint(User, "email", email, "User")

        with self.transaction("Admin registration failed"):
            admin = User(
                email=email,
                password_hash=get_password_hash(data.password),
                name=data.name,
                phone=validate_phone(data.phone),
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
                is_assigned=True
            )
            self.db.add(admin)
            self.db.flush()

            organization = Organization(
                org_code=generate_org_code(self.db),
                name=data.organization_name,
                email=data.organization_email or email,
                phone=data.organization_phone or data.phone,
                industry=data.industry,
                admin_id=admin.id
            )
            self.db.add(organization)
            self.db.flush()

            admin.organization_id = organization.id
            admin.org_code = organization.org_code

        self.db.refresh(admin)
        self.db.refresh(organization)
        self.log_service_action("register_admin", "Organization", str(organization.id),
                                {"org_code": organization.org_code})
        return admin, organization

    def register_staff(self, data: StaffRegistration):
        """Create a pending HR/manager/employee user together with its join request."""
        validate_password(data.password)
        email = data.email.lower()
        self.check_unique_constraint(User, "email", email, "User")

        requested_role = RequestedRole(data.role)
        organization = self._resolve_target_organization(requested_role, data)

        is_hr = requested_role is RequestedRole.HR
        with self.transaction("Staff registration failed"):
            user = User(
                email=email,
                password_hash=get_password_hash(data.password),
                name=data.name,
                phone=validate_phone(data.phone),
                role=UserRole(requested_role.value),
                status=UserStatus.PENDING_HR_APPROVAL if is_hr else UserStatus.PENDING_STAFF_APPROVAL,
                is_assigned=False
            )
            self.db.add(user)
            self.db.flush()

            join_request = JoinRequest(
                user_id=user.id,
                request_type=RequestType.HR_JOIN if is_hr else RequestType.STAFF_JOIN,
                requested_role=requested_role,
                requested_org_code=organization.org_code if is_hr else data.requested_org_code,
                requested_hr_code=None if is_hr else data.requested_hr_code,
                organization_id=organization.id,
                request_message=data.request_message,
                status=RequestStatus.PENDING
            )
            self.db.add(join_request)

        self.db.refresh(user)
        self.db.refresh(join_request)
        self.log_service_action("register_staff", "JoinRequest", str(join_request.id),
                                {"requested_role": requested_role.value, "organization_id": str(organization.id)})
        return user, join_request, organization

    def _resolve_target_organization(self, requested_role: RequestedRole, data: StaffRegistration) -> Organization:
        if requested_role is RequestedRole.HR:
            if not data.requested_org_code:
                raise ValidationError("Organization code is required for HR registration", field="requested_org_code")
            if not is_valid_org_code(data.requested_org_code):
                raise ValidationError("Invalid organization code format", field="requested_org_code",
                                      value=data.requested_org_code)
            organization = self.db.query(Organization).filter(
                Organization.org_code == data.requested_org_code
            ).first()
            if not organization:
                raise ResourceNotFoundError("Organization", data.requested_org_code)
            return organization

        if not data.requested_hr_code:
            raise ValidationError("HR code is required for staff registration", field="requested_hr_code")
        if not is_valid_hr_code(data.requested_hr_code):
            raise ValidationError("Invalid HR code format", field="requested_hr_code", value=data.requested_hr_code)
        hr_manager = self.db.query(HRManager).filter(HRManager.hr_code == data.requested_hr_code).first()
        if not hr_manager:
            raise ResourceNotFoundError("HR manager", data.requested_hr_code)
        if data.requested_org_code and data.requested_org_code != hr_manager.org_code:
            raise ValidationError("HR code does not belong to the given organization", field="requested_org_code",
                                  value=data.requested_org_code)
        return hr_manager.organization

    def authenticate_user(self, login_data: UserLogin) -> User:
        """Check credentials; a locked account is refused before the password is looked at.

        A wrong password is counted against the account and leaves the
        resulting LoginFailure on ``self.last_failure`` for alerting.
        """
        self.last_failure = None
        user = self.get_user_by_email(login_data.email)

        if not user:
            self.log_service_action("failed_login_attempt", extra_data={"email": login_data.email, "reason": "user_not_found"})
            raise AuthenticationError("Invalid email or password")

        if user.is_locked():
            self.log_service_action("failed_login_attempt", "User", str(user.id), {"reason": "account_locked"})
            raise AccountLockedError(user.minutes_until_unlock())

        if not verify_password(login_data.password, user.password_hash):
            failure = self._record_failed_login(user)
            self.last_failure = failure
            if failure.locked:
                raise AccountLockedError(settings.lock_time_minutes)
            remaining = settings.max_login_attempts - failure.attempts
            raise AuthenticationError(
                f"Invalid email or password. {remaining} attempts remaining before account lock.",
                error_data={"remaining_attempts": remaining}
            )

        if UserStatus(user.status) is UserStatus.INACTIVE:
            self.log_service_action("failed_login_attempt", "User", str(user.id), {"reason": "user_inactive"})
            raise ResourceInactiveError("User", str(user.id))

        with self.transaction("Error updating login state"):
            user.reset_login_attempts()
            user.last_login = utcnow()

        self.log_service_action("successful_login", "User", str(user.id))
        return user

    def _record_failed_login(self, user: User) -> LoginFailure:
        with self.transaction("Error updating login state"):
            locked = user.register_failed_login(settings.max_login_attempts, settings.lock_time_minutes)

        self.log_service_action(
            "failed_login_attempt", "User", str(user.id),
            {"reason": "invalid_password", "attempts": user.login_attempts, "locked": locked}
        )
        return LoginFailure(user=user, attempts=user.login_attempts, locked=locked)

    def get_user_by_id(self, user_id) -> Optional[User]:
        key = self.parse_uuid(user_id, "User")
        if key is None:
            return None
        return self.db.query(User).filter(User.id == key).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def create_tokens(self, user: User) -> dict:
        """Create access and refresh tokens for user."""
        access_token = create_access_token(data={"sub": str(user.id)})
        refresh_token = create_refresh_token(data={"sub": str(user.id)})

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }
