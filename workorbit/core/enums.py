import enum

from sqlalchemy import Enum as SAEnum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class UserStatus(str, enum.Enum):
    PENDING_HR_APPROVAL = "pending_hr_approval"
    PENDING_STAFF_APPROVAL = "pending_staff_approval"
    ACTIVE = "active"
    INACTIVE = "inactive"


class RequestType(str, enum.Enum):
    HR_JOIN = "hr_join"
    STAFF_JOIN = "staff_join"


class RequestedRole(str, enum.Enum):
    """Roles a self-registering user may ask for; admin is never requestable."""

    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


def enum_column_type(enum_class, name: str) -> SAEnum:
    """Column type storing the enum's lowercase values rather than member names."""
    return SAEnum(
        enum_class,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )
