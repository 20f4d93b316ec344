from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Employee:
    """Domain entity: only what attendance needs (id, tenant, status).

    Full profile data lives with the employee management system.
    """

    employee_id: int
    tenant_id: int
    name: str = ""
    is_active: bool = True
