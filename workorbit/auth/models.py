from datetime import timedelta

from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from workorbit.core.database import Base, generate_uuid, utcnow, as_naive_utc
from workorbit.core.enums import UserRole, UserStatus, enum_column_type


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(20))
    role = Column(enum_column_type(UserRole, "user_role"), nullable=False)
    status = Column(enum_column_type(UserStatus, "user_status"), nullable=False)

    # Organization membership
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True, index=True)
    org_code = Column(String(20))
    hr_code = Column(String(30))  # Own code for HR, reporting HR's code for staff
    employee_id = Column(String(20), unique=True, nullable=True, index=True)
    department = Column(String(100))
    designation = Column(String(100))
    is_assigned = Column(Boolean, default=False, nullable=False)
    date_of_joining = Column(DateTime(timezone=True))

    # Lockout bookkeeping
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(DateTime(timezone=True))
    last_login = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    organization = relationship("Organization", foreign_keys=[organization_id])

    def is_locked(self) -> bool:
        lock_until = as_naive_utc(self.lock_until)
        return bool(lock_until and lock_until > utcnow())

    def minutes_until_unlock(self) -> int:
        if not self.is_locked():
            return 0
        remaining = as_naive_utc(self.lock_until) - utcnow()
        return max(1, -(-int(remaining.total_seconds()) // 60))

    def register_failed_login(self, max_attempts: int, lock_minutes: int) -> bool:
        """Count a failed login; return True when this failure locked the account."""
        lock_until = as_naive_utc(self.lock_until)
        if lock_until and lock_until < utcnow():
            # Previous lock expired, start a fresh window
            self.login_attempts = 1
            self.lock_until = None
            return False

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= max_attempts:
            self.lock_until = utcnow() + timedelta(minutes=lock_minutes)
            return True
        return False

    def reset_login_attempts(self):
        self.login_attempts = 0
        self.lock_until = None
