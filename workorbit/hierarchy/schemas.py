from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from workorbit.auth.schemas import UserResponse
from workorbit.core.enums import RequestType, RequestedRole, RequestStatus, UserRole


class ApproveRequestBody(BaseModel):
    department: Optional[str] = Field(None, max_length=100)
    designation: Optional[str] = Field(None, max_length=100)
    message: Optional[str] = None


class RejectRequestBody(BaseModel):
    reason: Optional[str] = None


class RequesterSummary(BaseModel):
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True


class JoinRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    request_type: RequestType
    requested_role: RequestedRole
    requested_org_code: Optional[str]
    requested_hr_code: Optional[str]
    organization_id: UUID
    status: RequestStatus
    approved_by: Optional[UUID]
    request_message: Optional[str]
    response_message: Optional[str]
    requested_at: datetime
    responded_at: Optional[datetime]

    class Config:
        from_attributes = True


class PendingJoinRequestResponse(JoinRequestResponse):
    requester: RequesterSummary


class PendingRequestsEnvelope(BaseModel):
    success: bool = True
    data: List[PendingJoinRequestResponse]


class ApprovalResult(BaseModel):
    join_request: JoinRequestResponse
    user: UserResponse


class ApprovalEnvelope(BaseModel):
    success: bool = True
    message: str
    data: ApprovalResult


class RejectionEnvelope(BaseModel):
    success: bool = True
    message: str
    data: JoinRequestResponse


class OrgCodeSummary(BaseModel):
    organization_name: str
    org_code: str


class HRCodeSummary(BaseModel):
    hr_name: str
    hr_code: str
    organization_name: str
    org_code: str


class OrgCodeValidationEnvelope(BaseModel):
    success: bool = True
    valid: bool = True
    data: OrgCodeSummary


class HRCodeValidationEnvelope(BaseModel):
    success: bool = True
    valid: bool = True
    data: HRCodeSummary


class MemberSummary(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    department: Optional[str] = None
    designation: Optional[str] = None
    employee_id: Optional[str] = None

    class Config:
        from_attributes = True


class HRMemberSummary(MemberSummary):
    hr_code: str


class OrganizationSummary(BaseModel):
    id: UUID
    name: str
    org_code: str

    class Config:
        from_attributes = True


class OrganizationHierarchy(BaseModel):
    organization: OrganizationSummary
    admin: Optional[MemberSummary]
    hr_managers: List[HRMemberSummary]
    managers: List[MemberSummary]
    employees: List[MemberSummary]


class HierarchyEnvelope(BaseModel):
    success: bool = True
    data: OrganizationHierarchy
