"""
Validation Utilities for registration input
"""

import re
from typing import Optional

from workorbit.core.exceptions import ValidationError


def validate_password(password: str, min_length: int = 8) -> str:
    """Validate password strength."""
    if not password or not isinstance(password, str):
        raise ValidationError(
            detail="Password is required",
            field="password"
        )

    if len(password) < min_length:
        raise ValidationError(
            detail=f"Password must be at least {min_length} characters long",
            field="password",
            error_data={"min_length": min_length, "actual_length": len(password)}
        )

    if not re.search(r'[A-Za-z]', password):
        raise ValidationError(
            detail="Password must contain at least one letter",
            field="password"
        )

    if not re.search(r'\d', password):
        raise ValidationError(
            detail="Password must contain at least one digit",
            field="password"
        )

    return password


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """Validate phone number format."""
    if not phone:
        return None

    digits_only = re.sub(r'\D', '', phone)

    if len(digits_only) < 10 or len(digits_only) > 15:
        raise ValidationError(
            detail="Phone number must be between 10 and 15 digits",
            field="phone",
            value=phone
        )

    return phone.strip()
