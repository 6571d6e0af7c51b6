from __future__ import annotations

from typing import Dict, FrozenSet

ADMINISTRATOR = "administrator"
RECEPTION = "reception"
DOCTOR = "doctor"
NURSING = "nursing"

ROLES: FrozenSet[str] = frozenset({ADMINISTRATOR, RECEPTION, DOCTOR, NURSING})

_ALL_STAFF = frozenset({ADMINISTRATOR, RECEPTION, DOCTOR, NURSING})

PERMISSIONS: Dict[str, FrozenSet[str]] = {
    "patients:read": _ALL_STAFF,
    "patients:write": frozenset({ADMINISTRATOR, RECEPTION}),
    "patients:delete": frozenset({ADMINISTRATOR}),
    "doctors:read": _ALL_STAFF,
    "doctors:write": frozenset({ADMINISTRATOR}),
    "doctors:delete": frozenset({ADMINISTRATOR}),
    "appointments:read": _ALL_STAFF,
    "appointments:write": frozenset({ADMINISTRATOR, RECEPTION, DOCTOR}),
    "appointments:cancel": frozenset({ADMINISTRATOR, RECEPTION, DOCTOR}),
    "beds:read": frozenset({ADMINISTRATOR, RECEPTION, NURSING}),
    "beds:write": frozenset({ADMINISTRATOR, NURSING}),
    "clinical_records:read": frozenset({ADMINISTRATOR, DOCTOR, NURSING}),
    "clinical_records:write": frozenset({ADMINISTRATOR, DOCTOR}),
    "invoices:read": frozenset({ADMINISTRATOR, RECEPTION}),
    "invoices:write": frozenset({ADMINISTRATOR, RECEPTION}),
    "users:read": frozenset({ADMINISTRATOR}),
    "users:write": frozenset({ADMINISTRATOR}),
    "audit:read": frozenset({ADMINISTRATOR}),
}


def is_allowed(permission: str, role: str | None) -> bool:
    """Return whether ``role`` holds ``permission``.

    Unknown permission strings raise ``KeyError``; they indicate a typo in a
    router rather than a request the caller could correct.
    """
    allowed = PERMISSIONS[permission]
    return role is not None and role in allowed
