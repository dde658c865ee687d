"""Role resolution: combine the legacy admin flag with role assignment rows.

Two representations of "admin" coexist: the ``users.is_admin`` flag and
ADMIN rows in ``user_role_assignments``. The effective role set is their union
plus the implicit GUEST role. Mutations keep the two in sync: assigning ADMIN
sets the flag, removing the ADMIN row clears it.

Everything here is pure; the role repository feeds it persisted state.
"""

from collections.abc import Iterable

from staybook.models.role_assignment import Role
from staybook.repositories.errors import InvalidArgumentError

# Implicit role held by every registered user; never stored as a row.
DEFAULT_ROLE = Role.GUEST

# Role the legacy is_admin flag stands for.
LEGACY_FLAG_ROLE = Role.ADMIN

# Claim types emitted for token building.
CLAIM_IS_ADMIN = "IsAdmin"
CLAIM_ROLE = "role"

_ROLES_BY_NAME: dict[str, Role] = {}
for _role in Role:
    _ROLES_BY_NAME[_role.name.lower()] = _role
    _ROLES_BY_NAME[_role.label.lower()] = _role


def parse_role(value: Role | int | str) -> Role:
    """
    Coerce a role given as enum, stored integer, or name.

    Names are case-insensitive and accept both ``SUPER_ADMIN`` and ``SuperAdmin``.
    Raises InvalidArgumentError for anything that is not a known role.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid role: {value!r}")
    if isinstance(value, int):
        try:
            return Role(value)
        except ValueError:
            raise InvalidArgumentError(f"Invalid role: {value!r}") from None
    if isinstance(value, str) and value.strip():
        key = value.strip().lower()
        if key.lstrip("-").isdigit():
            return parse_role(int(key))
        role = _ROLES_BY_NAME.get(key)
        if role is not None:
            return role
    raise InvalidArgumentError(f"Invalid role: {value!r}")


def _known_roles(assigned: Iterable[Role | int]) -> set[Role]:
    """Drop stored values that no longer map to a Role."""
    known: set[Role] = set()
    for value in assigned:
        try:
            known.add(Role(int(value)))
        except ValueError:
            continue
    return known


def effective_roles(is_admin: bool, assigned: Iterable[Role | int]) -> list[Role]:
    """Effective set: ADMIN if flagged, every known assigned role, and GUEST; lowest rank first."""
    roles = _known_roles(assigned)
    if is_admin:
        roles.add(LEGACY_FLAG_ROLE)
    roles.add(DEFAULT_ROLE)
    return sorted(roles)


def highest_role(is_admin: bool, assigned: Iterable[Role | int]) -> Role:
    """
    Highest effective role.

    A set legacy flag decides on its own: the answer is ADMIN whatever rows
    exist. Otherwise the highest known assigned role, or GUEST when none.
    """
    if is_admin:
        return LEGACY_FLAG_ROLE
    roles = _known_roles(assigned)
    return max(roles) if roles else DEFAULT_ROLE


def has_role(is_admin: bool, assigned: Iterable[Role | int], role: Role | int | str) -> bool:
    """Exact membership check: GUEST always, ADMIN via flag or row, anything else via row."""
    wanted = parse_role(role)
    if wanted == DEFAULT_ROLE:
        return True
    if wanted == LEGACY_FLAG_ROLE and is_admin:
        return True
    return wanted in _known_roles(assigned)


def admin_flag_after_assign(current: bool, role: Role | int | str) -> bool:
    """Assigning ADMIN sets the legacy flag; other roles leave it as is."""
    return True if parse_role(role) == LEGACY_FLAG_ROLE else current


def admin_flag_after_remove(current: bool, role: Role | int | str) -> bool:
    """Removing the ADMIN row clears the legacy flag; other roles leave it as is."""
    return False if parse_role(role) == LEGACY_FLAG_ROLE else current


def role_claims(is_admin: bool, roles: Iterable[Role | int]) -> list[tuple[str, str]]:
    """(claim-type, claim-value) pairs: the legacy IsAdmin flag, then one role claim per role."""
    claims = [(CLAIM_IS_ADMIN, str(bool(is_admin)))]
    for role in sorted(_known_roles(roles)):
        claims.append((CLAIM_ROLE, role.label))
    return claims
