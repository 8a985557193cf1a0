"""
Who may act on a join request.

Admins onboard HR managers; HR managers onboard the staff who registered
with their own HR code. Managers and employees never approve anything.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from workorbit.auth.models import User
from workorbit.core.enums import RequestType, UserRole
from workorbit.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from workorbit.hierarchy.models import JoinRequest
from workorbit.organizations.models import Organization, HRManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingScope:
    """Filter describing which pending requests an actor may see."""

    organization_id: UUID
    request_type: RequestType
    hr_code: Optional[str] = None


class ApprovalGuard:
    def __init__(self, db: Session):
        self.db = db

    def owned_organization(self, admin: User) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.admin_id == admin.id).first()

    def hr_profile(self, hr_user: User) -> Optional[HRManager]:
        return self.db.query(HRManager).filter(HRManager.user_id == hr_user.id).first()

    def hr_code_for(self, hr_user: User, profile: Optional[HRManager] = None) -> Optional[str]:
        profile = profile if profile is not None else self.hr_profile(hr_user)
        if profile and profile.hr_code:
            return profile.hr_code
        return hr_user.hr_code

    def authorize(self, actor: User, join_request: JoinRequest, action: str = "approve") -> None:
        """Raise InsufficientPermissionsError unless ``actor`` may ``action`` the request."""
        role = UserRole(actor.role)

        if role is UserRole.ADMIN:
            self._authorize_admin(actor, join_request, action)
        elif role is UserRole.HR:
            self._authorize_hr(actor, join_request, action)
        elif role in (UserRole.MANAGER, UserRole.EMPLOYEE):
            self._deny(actor, join_request, f"Only admin and HR can {action} requests")
        else:
            self._deny(actor, join_request, f"Unsupported role {role.value}")

    def _authorize_admin(self, actor: User, join_request: JoinRequest, action: str):
        if RequestType(join_request.request_type) is not RequestType.HR_JOIN:
            self._deny(actor, join_request, f"Admin can only {action} HR join requests")

        organization = self.db.query(Organization).filter(
            Organization.id == join_request.organization_id,
            Organization.admin_id == actor.id
        ).first()
        if not organization:
            self._deny(actor, join_request, f"You can only {action} requests for your organization")

    def _authorize_hr(self, actor: User, join_request: JoinRequest, action: str):
        if RequestType(join_request.request_type) is not RequestType.STAFF_JOIN:
            self._deny(actor, join_request, f"HR can only {action} staff join requests")

        profile = self.hr_profile(actor)
        if not profile or profile.organization_id != join_request.organization_id:
            self._deny(actor, join_request, f"You can only {action} requests for your organization")

        if join_request.requested_hr_code != self.hr_code_for(actor, profile):
            self._deny(actor, join_request, f"You can only {action} staff who registered with your HR code")

    def _deny(self, actor: User, join_request: JoinRequest, reason: str):
        logger.warning(
            f"Join request access denied: {reason}",
            extra={
                "user_id": str(actor.id),
                "user_role": UserRole(actor.role).value,
                "join_request_id": str(join_request.id)
            }
        )
        raise InsufficientPermissionsError(
            detail=reason,
            error_data={"user_role": UserRole(actor.role).value}
        )

    def pending_scope(self, actor: User) -> Optional[PendingScope]:
        """Scope of pending requests ``actor`` may list.

        Returns None for an HR user without an HR manager record or code
        (nothing to list), matching what approval would allow.
        """
        role = UserRole(actor.role)

        if role is UserRole.ADMIN:
            organization = self.owned_organization(actor)
            if not organization:
                raise ResourceNotFoundError("Organization")
            return PendingScope(organization_id=organization.id, request_type=RequestType.HR_JOIN)

        if role is UserRole.HR:
            profile = self.hr_profile(actor)
            if not profile:
                logger.warning(f"HR user has no HR manager record: {actor.email}")
                return None
            hr_code = self.hr_code_for(actor, profile)
            if not hr_code:
                logger.warning(f"HR user has no HR code: {actor.email}")
                return None
            return PendingScope(
                organization_id=profile.organization_id,
                request_type=RequestType.STAFF_JOIN,
                hr_code=hr_code
            )

        if role in (UserRole.MANAGER, UserRole.EMPLOYEE):
            raise InsufficientPermissionsError(detail="Only admin and HR can view join requests")

        raise InsufficientPermissionsError(detail=f"Unsupported role {role.value}")
