"""
Agent adapter: one agent's stores, dispatched by capability type.
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from agentx.lib.typed_errors import NotApplicable
from agentx.models import CapabilityType, Status


@runtime_checkable
class CapabilityStore(Protocol):
    """Storage for one capability type inside one agent."""

    @property
    def location(self) -> Path: ...

    def read(self, name: str) -> bool: ...

    def write(self, name: str, payload: Any) -> None: ...

    def remove(self, name: str) -> None: ...

    def list(self) -> dict[str, Any]: ...


class AgentAdapter:
    """Uniform read/write/remove over an agent's capability stores.

    Which capability types an agent supports is fixed by the stores it was
    built with. Reads and writes are blocking; callers run them in a thread.
    """

    def __init__(self, stores: dict[CapabilityType, CapabilityStore]):
        self._stores = dict(stores)

    def supports(self, capability_type: CapabilityType) -> bool:
        return capability_type in self._stores

    def store(self, capability_type: CapabilityType) -> CapabilityStore:
        try:
            return self._stores[capability_type]
        except KeyError:
            raise NotApplicable(
                f"{capability_type.value} capabilities are not supported"
            ) from None

    def read_entry(self, capability_type: CapabilityType, name: str) -> Status:
        """Status of `name`. Raises ConfigUnreadable when the store is corrupt."""
        if self.store(capability_type).read(name):
            return Status.INSTALLED
        return Status.NOT_INSTALLED

    def write_entry(self, capability_type: CapabilityType, name: str, payload: Any) -> None:
        self.store(capability_type).write(name, payload)

    def remove_entry(self, capability_type: CapabilityType, name: str) -> None:
        self.store(capability_type).remove(name)

    def list_entries(self, capability_type: CapabilityType) -> dict[str, Any]:
        return self.store(capability_type).list()
