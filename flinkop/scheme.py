"""Registry that maps API types to their group, version and kind."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class GroupKind:
    """A kind qualified by its API group."""

    group: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind}.{self.group}" if self.group else self.kind


@dataclass(frozen=True)
class GroupResource:
    """A resource name qualified by its API group."""

    group: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.group}" if self.group else self.resource


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def with_kind(self, kind: str) -> GroupKind:
        return GroupKind(self.group, kind)

    def with_resource(self, resource: str) -> GroupResource:
        return GroupResource(self.group, resource)


class Scheme:
    """Known types, each registered under a group version and a kind."""

    def __init__(self) -> None:
        self._types: dict[tuple[GroupVersion, str], type] = {}
        self._kinds: dict[type, list[tuple[GroupVersion, str]]] = {}

    def add_known_types(self, group_version: GroupVersion, *types: type) -> None:
        """Register each type under its class name as the kind."""
        for tp in types:
            if not isinstance(tp, type):
                raise TypeError(f"expected a class, got {tp!r}")
            key = (group_version, tp.__name__)
            existing = self._types.get(key)
            if existing is not None and existing is not tp:
                raise ValueError(
                    f"kind {tp.__name__} in {group_version} is already registered "
                    f"to {existing.__module__}.{existing.__qualname__}"
                )
            self._types[key] = tp
            registered = self._kinds.setdefault(tp, [])
            if key not in registered:
                registered.append(key)

    def kind_for(self, obj: object) -> tuple[GroupVersion, str]:
        """Return the group version and kind of an object or class."""
        tp = obj if isinstance(obj, type) else type(obj)
        try:
            return self._kinds[tp][0]
        except KeyError:
            raise KeyError(f"no kind is registered for the type {tp.__qualname__}") from None

    def type_for(self, group_version: GroupVersion, kind: str) -> type:
        """Return the class registered for a group version and kind."""
        try:
            return self._types[(group_version, kind)]
        except KeyError:
            raise KeyError(f"no kind {kind!r} is registered for version {group_version}") from None


class SchemeBuilder:
    """Collects functions that add types to a scheme."""

    def __init__(self, *funcs: Callable[[Scheme], None]) -> None:
        self._funcs: list[Callable[[Scheme], None]] = list(funcs)

    def register(self, func: Callable[[Scheme], None]) -> Callable[[Scheme], None]:
        self._funcs.append(func)
        return func

    def add_to_scheme(self, scheme: Scheme) -> None:
        """Apply every registered function in order; the first failure propagates."""
        for func in self._funcs:
            func(scheme)


def add_to_scheme(scheme: Scheme) -> None:
    """Add every resource type the project serves to the scheme."""
    from flinkop import v1beta1  # deferred: the type module builds on this one

    SchemeBuilder(v1beta1.add_to_scheme).add_to_scheme(scheme)