from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping


class MasterDataDirectory(ABC):
    """Lookups into project, group and employee master data owned elsewhere."""

    @abstractmethod
    def project_exists(self, project_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def group_exists(self, group_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def employee_exists(self, employee_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def project_name(self, project_id: int | None) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def group_name(self, group_id: int | None) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def employee_name(self, employee_id: int | None) -> str | None:
        raise NotImplementedError


class OpenMasterDataDirectory(MasterDataDirectory):
    """Accepts every id and resolves no names. Used when master data is not wired."""

    def project_exists(self, project_id: int) -> bool:
        return True

    def group_exists(self, group_id: int) -> bool:
        return True

    def employee_exists(self, employee_id: int) -> bool:
        return True

    def project_name(self, project_id: int | None) -> str | None:
        return None

    def group_name(self, group_id: int | None) -> str | None:
        return None

    def employee_name(self, employee_id: int | None) -> str | None:
        return None


class StaticMasterDataDirectory(MasterDataDirectory):
    def __init__(
        self,
        *,
        projects: Mapping[int, str] | None = None,
        groups: Mapping[int, str] | None = None,
        employees: Mapping[int, str] | None = None,
    ) -> None:
        self._projects = {int(key): str(value) for key, value in (projects or {}).items()}
        self._groups = {int(key): str(value) for key, value in (groups or {}).items()}
        self._employees = {int(key): str(value) for key, value in (employees or {}).items()}

    @staticmethod
    def _lookup(mapping: dict[int, str], key: int | None) -> str | None:
        if key is None:
            return None
        try:
            return mapping.get(int(key))
        except (TypeError, ValueError):
            return None

    def project_exists(self, project_id: int) -> bool:
        return self._lookup(self._projects, project_id) is not None

    def group_exists(self, group_id: int) -> bool:
        return self._lookup(self._groups, group_id) is not None

    def employee_exists(self, employee_id: int) -> bool:
        return self._lookup(self._employees, employee_id) is not None

    def project_name(self, project_id: int | None) -> str | None:
        return self._lookup(self._projects, project_id)

    def group_name(self, group_id: int | None) -> str | None:
        return self._lookup(self._groups, group_id)

    def employee_name(self, employee_id: int | None) -> str | None:
        return self._lookup(self._employees, employee_id)
