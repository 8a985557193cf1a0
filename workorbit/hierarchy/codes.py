"""
Human-readable identifiers issued during onboarding.

``ORG001``        organization code, one per admin-created organization
``HR001-ORG001``  HR manager code, numbered within its organization
``EMP202500001``  employee ID, numbered within the calendar year

Org and HR codes start from ``count + 1`` and step forward past any value
that is already taken, so a gap left by a deleted or concurrently inserted
row never produces a duplicate. Every code column also carries a unique
constraint; the approval workflow claims codes inside a savepoint and asks
for a fresh one when that constraint fires.
"""

import re
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from workorbit.auth.models import User
from workorbit.core.exceptions import IdentifierCapacityExhaustedError
from workorbit.organizations.models import Organization, HRManager

ORG_CODE_PATTERN = re.compile(r"^ORG\d{3}$")
HR_CODE_PATTERN = re.compile(r"^HR\d{3}-ORG\d{3}$")

CODE_WIDTH = 3
EMPLOYEE_SEQUENCE_WIDTH = 5
MAX_EMPLOYEE_SEQUENCE = 99999


def is_valid_org_code(code: Optional[str]) -> bool:
    return bool(code) and ORG_CODE_PATTERN.match(code) is not None


def is_valid_hr_code(code: Optional[str]) -> bool:
    return bool(code) and HR_CODE_PATTERN.match(code) is not None


def format_org_code(number: int) -> str:
    return f"ORG{number:0{CODE_WIDTH}d}"


def format_hr_code(number: int, org_code: str) -> str:
    return f"HR{number:0{CODE_WIDTH}d}-{org_code}"


def format_employee_id(year: int, number: int) -> str:
    return f"EMP{year}{number:0{EMPLOYEE_SEQUENCE_WIDTH}d}"


def generate_org_code(db: Session) -> str:
    """Next free organization code."""
    number = db.query(func.count(Organization.id)).scalar() + 1
    code = format_org_code(number)
    while db.query(Organization.id).filter(Organization.org_code == code).first():
        number += 1
        code = format_org_code(number)
    return code


def generate_hr_code(db: Session, org_code: str) -> str:
    """Next free HR code within ``org_code``."""
    number = db.query(func.count(HRManager.id)).filter(HRManager.org_code == org_code).scalar() + 1
    code = format_hr_code(number, org_code)
    while db.query(HRManager.id).filter(HRManager.hr_code == code).first():
        number += 1
        code = format_hr_code(number, org_code)
    return code


def generate_employee_id(
    db: Session,
    year: Optional[int] = None,
    max_sequence: int = MAX_EMPLOYEE_SEQUENCE
) -> str:
    """Lowest unused employee ID for ``year`` (defaults to the current year).

    Raises IdentifierCapacityExhaustedError once every sequence number up to
    ``max_sequence`` is taken.
    """
    year = year or datetime.utcnow().year
    prefix = f"EMP{year}"

    taken = {
        employee_id
        for (employee_id,) in db.query(User.employee_id).filter(User.employee_id.like(f"{prefix}%"))
    }

    for number in range(1, max_sequence + 1):
        candidate = format_employee_id(year, number)
        if candidate not in taken:
            return candidate

    raise IdentifierCapacityExhaustedError(field="employee_id", prefix=prefix)
