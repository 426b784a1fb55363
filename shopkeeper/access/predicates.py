"""
Access predicates.

Each predicate is a pure function of the subject. An absent subject
(``None``) always yields ``Deny`` (or False), never an exception.
"""

from typing import Optional

from ..constants import IDENTITY_FIELD, OWNER_FIELD
from .decisions import DENY, AllowIf, Decision, FieldEquals, either
from .subject import Subject


def is_administrator(subject: Optional[Subject]) -> bool:
    return bool(subject is not None and subject.is_admin)


def owns_resource(subject: Optional[Subject]) -> Decision:
    """Restrict to records whose owner relationship points at the subject."""
    if subject is None:
        return DENY
    return AllowIf(FieldEquals(OWNER_FIELD, subject.id))


def is_self(subject: Optional[Subject]) -> Decision:
    """Restrict to the subject's own User record."""
    if subject is None:
        return DENY
    return AllowIf(FieldEquals(IDENTITY_FIELD, subject.id))


def is_administrator_or_owner(subject: Optional[Subject]) -> Decision:
    return either(Decision.from_bool(is_administrator(subject)), owns_resource(subject))


def can_access_user_record(subject: Optional[Subject]) -> Decision:
    return either(Decision.from_bool(is_administrator(subject)), is_self(subject))
