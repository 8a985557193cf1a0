import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from workorbit.auth.models import User
from workorbit.core.config import settings
from workorbit.core.database import utcnow
from workorbit.core.enums import RequestStatus, RequestedRole, UserRole, UserStatus
from workorbit.core.exceptions import (
    RequestNotPendingError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    ValidationError
)
from workorbit.core.logging_config import WorkflowOperationLogger
from workorbit.core.service_base import BaseService
from workorbit.hierarchy.codes import (
    generate_employee_id,
    generate_hr_code,
    is_valid_hr_code,
    is_valid_org_code
)
from workorbit.hierarchy.models import JoinRequest
from workorbit.hierarchy.permissions import ApprovalGuard
from workorbit.organizations.models import Organization, HRManager

logger = logging.getLogger(__name__)


@dataclass
class ApprovalOutcome:
    join_request: JoinRequest
    user: User


class HierarchyService(BaseService):
    """Join request approval workflow and organization lookups."""

    def __init__(self, db: Session, guard: Optional[ApprovalGuard] = None):
        super().__init__(db)
        self.guard = guard or ApprovalGuard(db)

    def list_pending(self, actor: User) -> List[JoinRequest]:
        """Pending requests ``actor`` may act on, newest first."""
        scope = self.guard.pending_scope(actor)
        if scope is None:
            return []

        query = self.db.query(JoinRequest).options(joinedload(JoinRequest.requester)).filter(
            JoinRequest.organization_id == scope.organization_id,
            JoinRequest.status == RequestStatus.PENDING,
            JoinRequest.request_type == scope.request_type
        )
        if scope.hr_code:
            query = query.filter(JoinRequest.requested_hr_code == scope.hr_code)

        requests = query.order_by(JoinRequest.requested_at.desc()).all()
        logger.info(
            f"Pending join requests for {actor.email}: {len(requests)}",
            extra={"user_role": UserRole(actor.role).value, "organization_id": str(scope.organization_id)}
        )
        return requests

    def _load_pending(self, request_id) -> JoinRequest:
        """Re-read the request under a row lock; only the first concurrent caller sees it pending."""
        key = self.parse_uuid(request_id, "JoinRequest")
        join_request = None
        if key is not None:
            join_request = (
                self.db.query(JoinRequest)
                .filter(JoinRequest.id == key)
                .with_for_update()
                .populate_existing()
                .first()
            )

        if not join_request:
            raise ResourceNotFoundError("Join request", str(request_id))

        current_status = RequestStatus(join_request.status)
        if current_status.is_terminal:
            raise RequestNotPendingError(str(join_request.id), current_status.value)

        return join_request

    def approve(
        self,
        request_id,
        actor: User,
        department: Optional[str] = None,
        designation: Optional[str] = None,
        message: Optional[str] = None
    ) -> ApprovalOutcome:
        with WorkflowOperationLogger("approve", str(request_id), logger) as operation:
            with self.transaction("Failed to approve request"):
                join_request = self._load_pending(request_id)
                self.guard.authorize(actor, join_request, "approve")

                requester = join_request.requester
                organization = join_request.organization
                if organization is None:
                    raise ResourceNotFoundError("Organization", str(join_request.organization_id))

                requested_role = RequestedRole(join_request.requested_role)
                if requested_role is RequestedRole.HR:
                    self._promote_to_hr(requester, organization)
                    operation.add_detail("hr_code", requester.hr_code)
                elif requested_role in (RequestedRole.MANAGER, RequestedRole.EMPLOYEE):
                    self._assign_staff(requester, organization, join_request, requested_role)
                    operation.add_detail("employee_id", requester.employee_id)
                else:
                    raise ValidationError("Unsupported requested role", field="requested_role", value=requested_role.value)

                if department:
                    requester.department = department
                if designation:
                    requester.designation = designation

                join_request.status = RequestStatus.APPROVED
                join_request.approved_by = actor.id
                join_request.responded_at = utcnow()
                join_request.response_message = message or f"Approved by {actor.name}"

            self.db.refresh(join_request)
            self.db.refresh(requester)

        self.log_service_action(
            "approve_join_request", "JoinRequest", str(join_request.id),
            {"approved_by": str(actor.id), "requester_id": str(requester.id)}
        )
        return ApprovalOutcome(join_request=join_request, user=requester)

    def _promote_to_hr(self, requester: User, organization: Organization):
        existing = self.db.query(HRManager.id).filter(HRManager.user_id == requester.id).first()
        if existing:
            raise ResourceAlreadyExistsError("HR manager", "user_id", str(requester.id))

        requester.role = UserRole.HR
        requester.org_code = organization.org_code
        requester.organization_id = organization.id
        requester.is_assigned = True
        requester.status = UserStatus.ACTIVE

        def stage(hr_code: str):
            self.db.add(HRManager(
                hr_code=hr_code,
                user_id=requester.id,
                organization_id=organization.id,
                org_code=organization.org_code
            ))
            requester.hr_code = hr_code

        self.claim_unique(
            "hr_code",
            lambda: generate_hr_code(self.db, organization.org_code),
            stage,
            settings.identifier_max_retries
        )

    def _assign_staff(
        self,
        requester: User,
        organization: Organization,
        join_request: JoinRequest,
        requested_role: RequestedRole
    ):
        requester.role = UserRole(requested_role.value)
        requester.organization_id = organization.id
        requester.org_code = organization.org_code
        requester.hr_code = join_request.requested_hr_code
        requester.is_assigned = True
        requester.date_of_joining = utcnow()
        requester.status = UserStatus.ACTIVE

        def stage(employee_id: str):
            requester.employee_id = employee_id

        self.claim_unique(
            "employee_id",
            lambda: generate_employee_id(self.db),
            stage,
            settings.identifier_max_retries
        )

    def reject(self, request_id, actor: User, reason: Optional[str] = None) -> JoinRequest:
        with WorkflowOperationLogger("reject", str(request_id), logger):
            with self.transaction("Failed to reject request"):
                join_request = self._load_pending(request_id)
                self.guard.authorize(actor, join_request, "reject")

                join_request.status = RequestStatus.REJECTED
                join_request.approved_by = actor.id
                join_request.responded_at = utcnow()
                join_request.response_message = reason or f"Rejected by {actor.name}"
                join_request.requester.status = UserStatus.INACTIVE

            self.db.refresh(join_request)

        self.log_service_action(
            "reject_join_request", "JoinRequest", str(join_request.id),
            {"rejected_by": str(actor.id)}
        )
        return join_request

    def organization_hierarchy(self, actor: User) -> dict:
        organization = None
        if actor.organization_id:
            organization = self.db.query(Organization).filter(Organization.id == actor.organization_id).first()
        elif UserRole(actor.role) is UserRole.ADMIN:
            organization = self.guard.owned_organization(actor)

        if not organization:
            raise ResourceNotFoundError("Organization")

        hr_managers = (
            self.db.query(HRManager)
            .options(joinedload(HRManager.user))
            .filter(HRManager.organization_id == organization.id)
            .order_by(HRManager.hr_code)
            .all()
        )
        staff = (
            self.db.query(User)
            .filter(
                User.organization_id == organization.id,
                User.role.in_([UserRole.MANAGER, UserRole.EMPLOYEE])
            )
            .order_by(User.name)
            .all()
        )

        return {
            "organization": organization,
            "admin": organization.admin,
            "hr_managers": [
                {
                    "id": hr.user.id,
                    "name": hr.user.name,
                    "email": hr.user.email,
                    "role": hr.user.role,
                    "department": hr.user.department,
                    "designation": hr.user.designation,
                    "employee_id": hr.user.employee_id,
                    "hr_code": hr.hr_code,
                }
                for hr in hr_managers
            ],
            "managers": [member for member in staff if UserRole(member.role) is UserRole.MANAGER],
            "employees": [member for member in staff if UserRole(member.role) is UserRole.EMPLOYEE],
        }

    def validate_org_code(self, code: str) -> Organization:
        if not is_valid_org_code(code):
            raise ValidationError("Invalid organization code format", field="code", value=code,
                                  error_data={"valid": False})

        organization = self.db.query(Organization).filter(Organization.org_code == code).first()
        if not organization:
            raise ResourceNotFoundError("Organization", code, error_data={"valid": False})
        return organization

    def validate_hr_code(self, code: str) -> HRManager:
        if not is_valid_hr_code(code):
            raise ValidationError("Invalid HR code format", field="code", value=code,
                                  error_data={"valid": False})

        hr_manager = (
            self.db.query(HRManager)
            .options(joinedload(HRManager.user), joinedload(HRManager.organization))
            .filter(HRManager.hr_code == code)
            .first()
        )
        if not hr_manager:
            raise ResourceNotFoundError("HR manager", code, error_data={"valid": False})
        return hr_manager
