from __future__ import annotations

from .base import HelmComponent


class ComponentRegistry:
    """Name-indexed set of components, kept in registration order."""

    def __init__(self) -> None:
        self._components: dict[str, HelmComponent] = {}

    def register(self, component: HelmComponent) -> None:
        if not component.name:
            raise ValueError("component name cannot be empty")
        if component.name in self._components:
            raise ValueError(f"component {component.name!r} is already registered")
        self._components[component.name] = component

    def get(self, name: str) -> HelmComponent | None:
        return self._components.get(name)

    def has(self, name: str) -> bool:
        return name in self._components

    def names(self) -> list[str]:
        return list(self._components)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._components.values())

    def __len__(self) -> int:
        return len(self._components)
