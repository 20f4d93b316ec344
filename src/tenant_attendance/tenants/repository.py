from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Holiday, Tenant


class TenantRepository(Protocol):
    def get_by_id(self, tenant_id: int) -> Optional[Tenant]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Tenant]:
        raise NotImplementedError

    def save(self, tenant: Tenant) -> None:
        """Persist all settings fields of an existing tenant."""

        raise NotImplementedError


class HolidayRepository(Protocol):
    def is_holiday(self, tenant_id: int, day: date) -> bool:
        raise NotImplementedError

    def list_range(self, tenant_id: int, *, start: date, end: date) -> Sequence[Holiday]:
        raise NotImplementedError

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def create(self, *, tenant_id: int, holiday_date: date, description: Optional[str]) -> Holiday:
        """Raises ConflictError when the tenant already has a holiday on that date."""

        raise NotImplementedError

    def delete(self, holiday_id: int) -> bool:
        raise NotImplementedError
