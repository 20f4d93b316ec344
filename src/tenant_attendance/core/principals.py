"""Capability-tagged principals.

Services dispatch on the principal variant instead of probing fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .enums import ActorKind


@dataclass(frozen=True)
class EmployeePrincipal:
    employee_id: int
    tenant_id: int

    @property
    def actor_id(self) -> str:
        return str(self.employee_id)

    @property
    def actor_kind(self) -> ActorKind:
        return ActorKind.EMPLOYEE


@dataclass(frozen=True)
class AdminPrincipal:
    admin_id: int
    tenant_id: int

    @property
    def actor_id(self) -> str:
        return str(self.admin_id)

    @property
    def actor_kind(self) -> ActorKind:
        return ActorKind.ADMIN


Principal = Union[EmployeePrincipal, AdminPrincipal]
