"""
Instance Registry

Pure lookup over the configured InstanceDescriptors. Sorted once by priority
(ties keep declaration order) and never mutated afterwards.
"""

from typing import Iterable, Iterator, List, Optional

from bloom.errors import ConfigurationError, UnknownInstanceError
from bloom.lib.config import InstanceDescriptor


class InstanceRegistry:
    """
    Ordered, immutable registry of bot instances

    Responsibilities:
    - Order descriptors by priority ascending
    - Resolve instance ids to descriptors
    - Provide the round-robin successor used by rotation
    """

    def __init__(self, descriptors: Iterable[InstanceDescriptor]):
        ordered = sorted(descriptors, key=lambda d: d.priority)
        if not ordered:
            raise ConfigurationError("Instance registry needs at least one instance")

        self._by_id = {}
        for descriptor in ordered:
            if descriptor.id in self._by_id:
                raise ConfigurationError(f"Duplicate instance id: {descriptor.id}")
            self._by_id[descriptor.id] = descriptor
        self._ordered = tuple(ordered)

    def list(self) -> List[InstanceDescriptor]:
        """All descriptors, priority ascending"""
        return list(self._ordered)

    def ids(self) -> List[str]:
        return [d.id for d in self._ordered]

    def find(self, instance_id: Optional[str]) -> Optional[InstanceDescriptor]:
        """Descriptor for instance_id, or None if it is not registered"""
        if instance_id is None:
            return None
        return self._by_id.get(instance_id)

    def get(self, instance_id: str) -> InstanceDescriptor:
        """Descriptor for instance_id; raises UnknownInstanceError if missing"""
        descriptor = self.find(instance_id)
        if descriptor is None:
            raise UnknownInstanceError(instance_id)
        return descriptor

    def default(self) -> InstanceDescriptor:
        """The highest-priority instance (first started, default active)"""
        return self._ordered[0]

    def index_of(self, instance_id: str) -> int:
        """Position in priority order; -1 when unknown"""
        for index, descriptor in enumerate(self._ordered):
            if descriptor.id == instance_id:
                return index
        return -1

    def next_after(self, instance_id: str) -> InstanceDescriptor:
        """Round-robin successor of instance_id over the full registry"""
        index = self.index_of(instance_id)
        if index == -1:
            raise UnknownInstanceError(instance_id)
        return self._ordered[(index + 1) % len(self._ordered)]

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._by_id

    def __iter__(self) -> Iterator[InstanceDescriptor]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __repr__(self) -> str:
        return f"InstanceRegistry({', '.join(self.ids())})"
