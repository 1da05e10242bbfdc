from collections import OrderedDict
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .base import MetricDefinition, MetricKind, MetricScope

GroupKey = Tuple[MetricScope, MetricKind]


class MetricRegistry:
    """Catalog of metric definitions split into table/aggregate gauges and counters."""

    def __init__(self) -> None:
        self._groups: Dict[GroupKey, "OrderedDict[str, MetricDefinition]"] = OrderedDict(
            (
                ((MetricScope.TABLE, MetricKind.GAUGE), OrderedDict()),
                ((MetricScope.TABLE, MetricKind.COUNTER), OrderedDict()),
                ((MetricScope.AGGREGATE, MetricKind.GAUGE), OrderedDict()),
                ((MetricScope.AGGREGATE, MetricKind.COUNTER), OrderedDict()),
            )
        )

    def register(self, definition: MetricDefinition) -> None:
        group = self._groups[(definition.scope, definition.kind)]
        if definition.name in group:
            raise ValueError(
                f"Metric '{definition.name}' is already registered as a "
                f"{definition.scope.value} {definition.kind.value}."
            )
        group[definition.name] = definition

    def register_all(self, definitions: Iterable[MetricDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def _group(self, scope: MetricScope, kind: MetricKind) -> Mapping[str, MetricDefinition]:
        return MappingProxyType(self._groups[(scope, kind)])

    @property
    def table_gauges(self) -> Mapping[str, MetricDefinition]:
        return self._group(MetricScope.TABLE, MetricKind.GAUGE)

    @property
    def table_counters(self) -> Mapping[str, MetricDefinition]:
        return self._group(MetricScope.TABLE, MetricKind.COUNTER)

    @property
    def aggregate_gauges(self) -> Mapping[str, MetricDefinition]:
        return self._group(MetricScope.AGGREGATE, MetricKind.GAUGE)

    @property
    def aggregate_counters(self) -> Mapping[str, MetricDefinition]:
        return self._group(MetricScope.AGGREGATE, MetricKind.COUNTER)

    def all(self, scope: MetricScope) -> List[MetricDefinition]:
        return [
            definition
            for (group_scope, _), group in self._groups.items()
            if group_scope == scope
            for definition in group.values()
        ]

    def get(self, name: str, scope: MetricScope) -> MetricDefinition:
        for (group_scope, _), group in self._groups.items():
            if group_scope == scope and name in group:
                return group[name]
        raise KeyError(f"Metric '{name}' is not registered as a {scope.value} metric.")

    def table_metric_names(self) -> List[str]:
        return [definition.name for definition in self.all(MetricScope.TABLE)]

    def aggregate_metric_names(self) -> List[str]:
        return [definition.name for definition in self.all(MetricScope.AGGREGATE)]

    def floating_table_metric_names(self) -> List[str]:
        return [
            definition.name
            for definition in self.all(MetricScope.TABLE)
            if definition.reported_as_float
        ]

    def floating_aggregate_metric_names(self) -> List[str]:
        return [
            definition.name
            for definition in self.all(MetricScope.AGGREGATE)
            if definition.reported_as_float
        ]
