from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from workorbit.core.database import Base, generate_uuid


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=generate_uuid)
    org_code = Column(String(20), unique=True, nullable=False, index=True)  # ORG###, never reassigned
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20))
    industry = Column(String(100))
    admin_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", use_alter=True, name="fk_organizations_admin_id"),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    admin = relationship("User", foreign_keys=[admin_id])
    hr_managers = relationship("HRManager", back_populates="organization")


class HRManager(Base):
    __tablename__ = "hr_managers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=generate_uuid)
    hr_code = Column(String(30), unique=True, nullable=False, index=True)  # HR###-ORG###
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    org_code = Column(String(20), nullable=False, index=True)
    department = Column(String(100), default="Human Resources")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User")
    organization = relationship("Organization", back_populates="hr_managers")
