"""
Resource graph - an arena of registered resources with explicit dependency edges.

Every resource of a topology goes through ``ResourceGraph.register``. The
graph records it, checks that each handle whose id appears in the
properties is declared in ``depends_on``, and forwards the registration to a
``ResourceEngine`` which returns the opaque id used by later resources.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .errors import ConfigurationError, DependencyError

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    NETWORK = "network"
    INTERNET_GATEWAY = "internet_gateway"
    GATEWAY_ATTACHMENT = "gateway_attachment"
    ROUTE_TABLE = "route_table"
    ROUTE = "route"
    SUBNET = "subnet"
    ROUTE_TABLE_ASSOCIATION = "route_table_association"
    ELASTIC_ADDRESS = "elastic_address"
    NAT_GATEWAY = "nat_gateway"


@dataclass(frozen=True)
class ResourceHandle:
    """Reference to a registered resource. ``id`` is whatever the engine returned."""

    index: int
    kind: ResourceKind
    name: str
    id: str


@dataclass(frozen=True)
class ResourceRecord:
    handle: ResourceHandle
    properties: dict[str, Any]
    depends_on: tuple[int, ...]


class ResourceEngine(Protocol):
    """The external collaborator that turns registrations into real resources."""

    def register(
        self,
        kind: ResourceKind,
        name: str,
        properties: dict[str, Any],
        depends_on: Sequence[ResourceHandle],
    ) -> str: ...


def ids_of(handles: Iterable[ResourceHandle]) -> tuple[str, ...]:
    return tuple(handle.id for handle in handles)


def referenced_values(value: Any) -> Iterable[str]:
    """Yield every string nested inside a property value."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from referenced_values(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from referenced_values(item)


class ResourceGraph:
    """Arena of resource records backed by a ``ResourceEngine``."""

    def __init__(self, engine: ResourceEngine) -> None:
        self._engine = engine
        self._records: list[ResourceRecord] = []
        self._names: set[str] = set()
        self._by_id: dict[str, ResourceHandle] = {}

    @property
    def records(self) -> tuple[ResourceRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def of_kind(self, kind: ResourceKind) -> list[ResourceRecord]:
        return [record for record in self._records if record.handle.kind is kind]

    def get(self, name: str) -> ResourceRecord:
        for record in self._records:
            if record.handle.name == name:
                return record
        raise KeyError(name)

    def dependencies_of(self, handle: ResourceHandle) -> list[ResourceHandle]:
        return [self._records[index].handle for index in self._records[handle.index].depends_on]

    def register(
        self,
        kind: ResourceKind,
        name: str,
        properties: dict[str, Any],
        depends_on: Sequence[ResourceHandle] = (),
    ) -> ResourceHandle:
        """
        Register one resource and return its handle.

        Raises:
            ConfigurationError: if ``name`` is already used in this graph.
            DependencyError: if a dependency was not produced by this graph, or
                if the properties reference a handle id missing from ``depends_on``.
        """
        if name in self._names:
            raise ConfigurationError(f"resource name {name!r} is already registered")

        for dependency in depends_on:
            if (
                dependency.index >= len(self._records)
                or self._records[dependency.index].handle != dependency
            ):
                raise DependencyError(f"{name}: unknown dependency {dependency.name!r}")

        declared = {dependency.id for dependency in depends_on}
        for value in referenced_values(properties):
            target = self._by_id.get(value)
            if target is not None and value not in declared:
                raise DependencyError(
                    f"{name}: references {target.name!r} without declaring the dependency"
                )

        resource_id = self._engine.register(kind, name, properties, depends_on)
        handle = ResourceHandle(index=len(self._records), kind=kind, name=name, id=resource_id)
        self._records.append(
            ResourceRecord(
                handle=handle,
                properties=dict(properties),
                depends_on=tuple(dependency.index for dependency in depends_on),
            )
        )
        self._names.add(name)
        self._by_id[resource_id] = handle
        logger.debug(
            "registered %s %s depends_on=%s", kind.value, name, [d.name for d in depends_on]
        )
        return handle
