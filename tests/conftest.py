from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pytest

Rows = List[Dict[str, Any]]
Response = Union[Rows, Callable[[Optional[Mapping[str, Any]]], Rows], Exception]


class FakeSource:
    """Query source returning canned rows for the first SQL fragment that matches."""

    def __init__(
        self,
        responses: Sequence[Tuple[str, Response]] = (),
        exclude_dbs=frozenset(),
        maintenance_database: str = "postgres",
    ) -> None:
        self.responses = list(responses)
        self.exclude_dbs = frozenset(exclude_dbs)
        self.maintenance_database = maintenance_database
        self.calls: List[Tuple[str, str, Optional[Mapping[str, Any]]]] = []

    def run_query(self, database, sql, params=None):
        self.calls.append((database, sql, params))
        for fragment, response in self.responses:
            if fragment in sql:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(params)
                return [dict(row) for row in response]
        return []


@pytest.fixture
def fake_source():
    return FakeSource
