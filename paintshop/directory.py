"""Read-only employee directory consumed by the workflow."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import yaml

from paintshop.orders.types import Employee, EmployeeRole
from paintshop.schema import Area


@runtime_checkable
class EmployeeDirectory(Protocol):
    def get(self, employee_id: str) -> Employee | None:
        """Return the employee or None when unknown."""


class StaticEmployeeDirectory:
    """Directory backed by an in-memory list."""

    def __init__(self, employees: list[Employee] | None = None):
        self._employees = {employee.id: employee for employee in employees or []}

    def get(self, employee_id: str) -> Employee | None:
        return self._employees.get(employee_id)

    def all(self) -> list[Employee]:
        return list(self._employees.values())

    def operators_in(self, area: Area) -> list[Employee]:
        """Employees who can be assigned work in an area."""
        return [
            employee
            for employee in self._employees.values()
            if employee.area is area
            and employee.role in {EmployeeRole.OPERATOR, EmployeeRole.MESSENGER, EmployeeRole.LEADER}
        ]


def load_employee_directory(path: str | Path) -> StaticEmployeeDirectory:
    """
    Load employees from YAML (`employees: [{id, name, role, area}]`).

    A missing file yields an empty directory.
    """
    path = Path(path)
    if not path.exists():
        return StaticEmployeeDirectory()

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    rows = data.get("employees") or []
    if not isinstance(rows, list):
        raise ValueError("employees must be a list")
    return StaticEmployeeDirectory([Employee.from_dict(row) for row in rows])
