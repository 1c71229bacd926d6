"""Base data source interface and capability catalog"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..config import AwsCredentials
from ..exceptions import ToolValidationError
from ..storage.schema import Capability, DataSourceResult


class DataSource(ABC):
    """Abstract base class for data-retrieval back ends"""

    @abstractmethod
    def capabilities(self) -> List[Capability]:
        """List every tool this back end can execute"""
        pass

    @abstractmethod
    def invoke(
        self,
        tool_name: str,
        params: Dict[str, Any],
        credentials: AwsCredentials,
        region: str,
    ) -> DataSourceResult:
        """
        Execute a tool.

        Args:
            tool_name: Capability name
            params: Parameters matching the capability's schema
            credentials: Credential bundle for the call
            region: Region the call targets

        Returns:
            Summary text plus optional datapoints and chart specification

        Raises:
            Exception: Any failure; back ends never return an empty success
        """
        pass


class CapabilityCatalog:
    """Read-only, name-keyed view over a set of capabilities"""

    def __init__(self, capabilities: Iterable[Capability]):
        self._by_name: Dict[str, Capability] = {}
        for capability in capabilities:
            if capability.name in self._by_name:
                raise ValueError(f"Duplicate capability name: {capability.name}")
            self._by_name[capability.name] = capability

    @classmethod
    def from_source(cls, data_source: DataSource) -> "CapabilityCatalog":
        return cls(data_source.capabilities())

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self):
        return iter(self._by_name.values())

    def names(self) -> List[str]:
        return list(self._by_name)

    def get(self, name: str) -> Optional[Capability]:
        return self._by_name.get(name)

    def validate(self, names: Iterable[str]) -> None:
        """
        Check that every name is a known capability.

        Raises:
            ToolValidationError: Listing the invalid names and the full valid set
        """
        invalid = [name for name in names if name not in self._by_name]
        if invalid:
            raise ToolValidationError(invalid, self.names())

    def describe(self) -> List[str]:
        """"name - description" lines for prompts"""
        return [f"{c.name} - {c.description}" for c in self._by_name.values()]
