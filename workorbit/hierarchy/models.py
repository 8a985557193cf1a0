from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, validates
from workorbit.core.database import Base, generate_uuid, utcnow
from workorbit.core.enums import RequestType, RequestedRole, RequestStatus, enum_column_type


class JoinRequest(Base):
    __tablename__ = "join_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=generate_uuid)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    request_type = Column(enum_column_type(RequestType, "join_request_type"), nullable=False)
    requested_role = Column(enum_column_type(RequestedRole, "join_requested_role"), nullable=False)
    requested_org_code = Column(String(20))
    requested_hr_code = Column(String(30), index=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    status = Column(
        enum_column_type(RequestStatus, "join_request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    request_message = Column(Text)
    response_message = Column(Text)
    requested_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    responded_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    requester = relationship("User", foreign_keys=[user_id])
    approver = relationship("User", foreign_keys=[approved_by])
    organization = relationship("Organization")

    @validates("status")
    def _validate_status(self, key, value):
        # approved/rejected are write-once
        current = self.status
        new_status = RequestStatus(value)
        if current is not None and RequestStatus(current).is_terminal and new_status != current:
            raise ValueError(f"Join request is already {RequestStatus(current).value}")
        return new_status
