from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

Number = Union[int, float]
TableMetricResult = Dict[str, Number]
AggregateMetricResult = Union[Number, Dict[str, int]]


class MetricKind(str, Enum):
    GAUGE = "gauge"
    COUNTER = "counter"


class MetricScope(str, Enum):
    TABLE = "table"
    AGGREGATE = "aggregate"


class QuerySource(Protocol):
    """What a handler needs: somewhere to run queries and the exclusion set."""

    exclude_dbs: AbstractSet[str]
    maintenance_database: str

    def run_query(
        self,
        database: str,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        ...


Handler = Callable[..., Any]


@dataclass(frozen=True)
class MetricDefinition:
    """Declarative definition of a metric and the handler that computes it."""

    name: str
    units: str
    kind: MetricKind
    scope: MetricScope
    handler: Handler
    reported_as_float: bool = False
    description: str = ""

    def collect(self, source: QuerySource, database: Optional[str]) -> Any:
        return self.handler(source, database)


@dataclass
class MetricResult:
    definition: MetricDefinition
    database: Optional[str]
    value: Any
