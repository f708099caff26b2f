"""Access decisions for catalogue operations.

A pure function of the principal, the operation's access class and, for
owner- and participant-only classes, the ids loaded from the target entity.
It never touches storage, so the catalogue can consult it before opening a
transaction and services can consult it again once the entity is loaded.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from consulthive.domain.models import Principal
from consulthive.operations.results import ErrorCode


class AccessClass(StrEnum):
    """Who may invoke an operation."""

    ANONYMOUS_OK = "anonymous"
    AUTHENTICATED = "authenticated"
    OWNER = "owner"
    PARTICIPANT = "participant"
    ADMIN = "admin"


def decide(
    principal: Principal | None,
    access: AccessClass,
    *,
    owner_id: str | None = None,
    participant_ids: Iterable[str] = (),
    admin_override: bool = False,
) -> ErrorCode | None:
    """Decide whether *principal* may act.

    Args:
        principal: The authenticated caller, or None for anonymous.
        access: The access class of the operation.
        owner_id: Owner of the target entity (OWNER class).
        participant_ids: Participants of the target entity (PARTICIPANT class).
        admin_override: Let an ADMIN principal pass OWNER and PARTICIPANT
            checks (used by owner-or-admin operations such as findMatches).

    Returns:
        None when access is allowed, otherwise UNAUTHORIZED or FORBIDDEN.
    """
    if access == AccessClass.ANONYMOUS_OK:
        return None
    if principal is None:
        return ErrorCode.UNAUTHORIZED
    if access == AccessClass.AUTHENTICATED:
        return None
    if access == AccessClass.ADMIN:
        return None if principal.is_admin else ErrorCode.FORBIDDEN
    if admin_override and principal.is_admin:
        return None
    if access == AccessClass.OWNER:
        if owner_id is not None and principal.user_id == owner_id:
            return None
        return ErrorCode.FORBIDDEN
    if access == AccessClass.PARTICIPANT:
        return None if principal.user_id in set(participant_ids) else ErrorCode.FORBIDDEN
    return ErrorCode.FORBIDDEN
