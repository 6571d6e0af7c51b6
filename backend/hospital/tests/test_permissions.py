from __future__ import annotations

import pytest

from hospital.api.deps import require_permission
from hospital.core.permissions import ADMINISTRATOR, DOCTOR, NURSING, PERMISSIONS, RECEPTION, is_allowed


def test_administrator_holds_every_permission() -> None:
    assert all(is_allowed(permission, ADMINISTRATOR) for permission in PERMISSIONS)


@pytest.mark.parametrize(
    ("permission", "role", "expected"),
    [
        ("appointments:write", RECEPTION, True),
        ("appointments:write", DOCTOR, True),
        ("appointments:write", NURSING, False),
        ("appointments:read", NURSING, True),
        ("beds:write", NURSING, True),
        ("beds:write", RECEPTION, False),
        ("beds:read", DOCTOR, False),
        ("audit:read", RECEPTION, False),
        ("patients:delete", RECEPTION, False),
        ("clinical_records:read", NURSING, True),
        ("clinical_records:read", RECEPTION, False),
        ("clinical_records:write", DOCTOR, True),
        ("clinical_records:write", NURSING, False),
        ("invoices:write", RECEPTION, True),
        ("invoices:read", DOCTOR, False),
    ],
)
def test_role_matrix(permission: str, role: str, expected: bool) -> None:
    assert is_allowed(permission, role) is expected


def test_missing_role_is_denied() -> None:
    assert is_allowed("patients:read", None) is False
    assert is_allowed("patients:read", "janitor") is False


def test_unknown_permission_is_a_programming_error() -> None:
    with pytest.raises(KeyError):
        is_allowed("beds:teleport", ADMINISTRATOR)
    with pytest.raises(KeyError):
        require_permission("beds:teleport")
