from typing import Any


class ServiceNotFoundError(Exception):
    def __init__(self, name: str) -> None:
        super().__init__(f'Service "{name}" not found')
        self.name = name


class ServiceRegistry:
    """Name -> instance lookup handed to steps through their context"""

    def __init__(self) -> None:
        self._services: dict[str, Any] = {}

    def register(self, name: str, instance: Any) -> None:
        self._services[name] = instance

    def get_service(self, name: str) -> Any:
        try:
            return self._services[name]
        except KeyError:
            raise ServiceNotFoundError(name) from None

    def has_service(self, name: str) -> bool:
        return name in self._services

    def names(self) -> list[str]:
        return sorted(self._services)
