"""
Base Service Class with Enhanced Error Handling
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from workorbit.core.exceptions import (
    BaseAPIException,
    DatabaseError,
    IdentifierConflictError,
    ResourceNotFoundError,
    ResourceAlreadyExistsError
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseService:
    """Base service class with common error handling patterns."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self, error_message: str = "Database operation failed"):
        """Run the enclosed block as one unit of work.

        Commits when the block finishes and rolls back on every exception
        path, including API exceptions raised deliberately mid-way.
        Integrity errors surface as 409 conflicts, other database errors
        as DatabaseError.
        """
        try:
            yield self.db
            self.db.commit()
        except BaseAPIException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error during commit: {str(e.orig)}")
            raise ResourceAlreadyExistsError(
                resource_type="Resource",
                error_data={"original_error": str(e.orig)}
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during commit: {str(e)}")
            raise DatabaseError(
                detail=error_message,
                error_data={"original_error": str(e)}
            )
        except Exception:
            self.db.rollback()
            raise

    def claim_unique(
        self,
        field: str,
        generate: Callable[[], T],
        apply: Callable[[T], None],
        max_attempts: int
    ) -> T:
        """Generate a value and persist it under a savepoint, regenerating on collision.

        ``apply`` stages the rows that carry the value; they are flushed inside
        a SAVEPOINT so a unique violation only discards this attempt. After
        ``max_attempts`` collisions an IdentifierConflictError is raised and the
        caller's transaction is expected to roll back.
        """
        for attempt in range(1, max_attempts + 1):
            value = generate()
            try:
                with self.db.begin_nested():
                    apply(value)
                    self.db.flush()
                return value
            except IntegrityError as e:
                logger.warning(
                    f"Generated {field} {value} collided (attempt {attempt}/{max_attempts}): {e.orig}"
                )

        raise IdentifierConflictError(field=field, attempts=max_attempts)

    def get_or_404(self, model_class, resource_id: Any, resource_type: str = None):
        """Get resource by ID or raise 404 error."""
        resource_type = resource_type or model_class.__name__
        key = self.parse_uuid(resource_id, resource_type)
        if key is None:
            raise ResourceNotFoundError(resource_type=resource_type, resource_id=str(resource_id))

        try:
            resource = self.db.query(model_class).filter(model_class.id == key).first()
        except SQLAlchemyError as e:
            logger.error(f"Database error in get_or_404: {str(e)}")
            raise DatabaseError(
                detail=f"Error retrieving {resource_type}",
                error_data={"resource_id": str(resource_id), "original_error": str(e)}
            )

        if not resource:
            raise ResourceNotFoundError(resource_type=resource_type, resource_id=str(resource_id))

        return resource

    @staticmethod
    def parse_uuid(value: Any, resource_type: str = "resource") -> Optional[uuid.UUID]:
        """UUID from a path/token value, or None when it is not one."""
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value))
        except (ValueError, TypeError):
            logger.debug(f"Malformed {resource_type} id: {value!r}")
            return None

    def check_unique_constraint(
        self,
        model_class,
        field_name: str,
        field_value: Any,
        resource_type: str = None,
        exclude_id: str = None
    ):
        """Check if a field value is unique."""
        try:
            query = self.db.query(model_class).filter(
                getattr(model_class, field_name) == field_value
            )

            if exclude_id:
                query = query.filter(model_class.id != exclude_id)

            existing = query.first()

        except SQLAlchemyError as e:
            logger.error(f"Database error in unique constraint check: {str(e)}")
            raise DatabaseError(
                detail=f"Error checking uniqueness for {field_name}",
                error_data={"field": field_name, "value": field_value, "original_error": str(e)}
            )

        if existing:
            raise ResourceAlreadyExistsError(
                resource_type=resource_type or model_class.__name__,
                field=field_name,
                value=str(field_value)
            )

    def log_service_action(
        self,
        action: str,
        resource_type: str = None,
        resource_id: str = None,
        extra_data: Dict[str, Any] = None
    ):
        """Log service actions for auditing."""
        log_data = {
            "action": action,
            "service": self.__class__.__name__
        }

        if resource_type:
            log_data["resource_type"] = resource_type
        if resource_id:
            log_data["resource_id"] = resource_id
        if extra_data:
            log_data.update(extra_data)

        logger.info(f"Service action: {action}", extra=log_data)
