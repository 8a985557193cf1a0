"""Import every mapped class so relationships resolve and ``create_all`` sees all tables."""

from workorbit.auth.models import User
from workorbit.organizations.models import Organization, HRManager
from workorbit.hierarchy.models import JoinRequest
from workorbit.notifications.models import Notification

__all__ = ["User", "Organization", "HRManager", "JoinRequest", "Notification"]
