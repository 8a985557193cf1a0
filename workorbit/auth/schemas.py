from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from workorbit.core.enums import RequestedRole, UserRole, UserStatus


class AdminRegistration(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    organization_name: str = Field(..., min_length=1, max_length=255)
    organization_email: Optional[EmailStr] = None
    organization_phone: Optional[str] = None
    industry: Optional[str] = None


class StaffRegistration(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    role: RequestedRole
    requested_org_code: Optional[str] = None
    requested_hr_code: Optional[str] = None
    request_message: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    organization_id: Optional[UUID] = None
    org_code: Optional[str] = None
    hr_code: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    is_assigned: bool
    date_of_joining: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationResponse(BaseModel):
    id: UUID
    org_code: str
    name: str
    email: str
    phone: Optional[str] = None
    industry: Optional[str] = None
    admin_id: UUID

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class AdminRegistrationData(Token):
    user: UserResponse
    organization: OrganizationResponse


class StaffRegistrationData(Token):
    user: UserResponse
    join_request_id: UUID
    request_status: str


class LoginData(Token):
    user: UserResponse


class AdminRegistrationEnvelope(BaseModel):
    success: bool = True
    message: str
    data: AdminRegistrationData


class StaffRegistrationEnvelope(BaseModel):
    success: bool = True
    message: str
    data: StaffRegistrationData


class LoginEnvelope(BaseModel):
    success: bool = True
    message: str
    data: LoginData
