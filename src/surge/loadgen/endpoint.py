from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Iterable

METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
DEFAULT_BODY = '{"name":"test","value":"test"}'

ID_PLACEHOLDER = "{id}"
RANDOM_ID_PLACEHOLDER = "{random_id}"
DELETE_ID_PLACEHOLDER = "{delete_id}"
_PLACEHOLDERS = (ID_PLACEHOLDER, RANDOM_ID_PLACEHOLDER, DELETE_ID_PLACEHOLDER)

# Highest IDs are kept for {delete_id} so deletes don't remove items the
# read/update placeholders still pick.
_DELETE_RANGE = 1000


class EndpointError(ValueError):
    pass


class InvalidFormatError(EndpointError):
    pass


class InvalidMethodError(EndpointError):
    pass


@dataclass(frozen=True, slots=True)
class Endpoint:
    method: str
    path: str
    body: str = ""
    has_dynamic_id: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        return f"{self.method}:{self.path}"


def parse_endpoint(raw: str) -> Endpoint:
    """Parse ``METHOD:PATH`` into an :class:`Endpoint`.

    Only the first colon separates method from path, so paths may contain
    colons. Mutating methods get a fixed JSON body.
    """
    method, sep, path = raw.partition(":")
    method = method.strip().upper()
    path = path.strip()
    if not sep or not method or not path:
        msg = f"invalid endpoint format: {raw} (expected METHOD:PATH)"
        raise InvalidFormatError(msg)
    if method not in METHODS:
        msg = f"invalid HTTP method: {method}"
        raise InvalidMethodError(msg)
    body = DEFAULT_BODY if method in BODY_METHODS else ""
    return Endpoint(
        method=method,
        path=path,
        body=body,
        has_dynamic_id=any(p in path for p in _PLACEHOLDERS),
    )


def parse_endpoints(raw_endpoints: Iterable[str]) -> list[Endpoint]:
    return [parse_endpoint(raw) for raw in raw_endpoints]


class IdPicker:
    """Fills ``{id}``, ``{random_id}`` and ``{delete_id}`` in endpoint paths."""

    def __init__(self, dataset_size: int, seed: int | None = None) -> None:
        self.dataset_size = dataset_size
        self._rng = Random(seed)

    def random_id(self) -> int:
        if self.dataset_size <= 0:
            return 1
        if self.dataset_size <= _DELETE_RANGE:
            return self._rng.randint(1, self.dataset_size)
        return self._rng.randint(1, self.dataset_size - _DELETE_RANGE)

    def delete_id(self) -> int:
        if self.dataset_size <= 0:
            return 1
        if self.dataset_size <= _DELETE_RANGE:
            return self.dataset_size
        start = self.dataset_size - _DELETE_RANGE
        return self._rng.randint(start + 1, self.dataset_size)

    def resolve(self, path: str) -> str:
        if DELETE_ID_PLACEHOLDER in path:
            path = path.replace(DELETE_ID_PLACEHOLDER, str(self.delete_id()))
        if ID_PLACEHOLDER in path or RANDOM_ID_PLACEHOLDER in path:
            value = str(self.random_id())
            path = path.replace(ID_PLACEHOLDER, value).replace(RANDOM_ID_PLACEHOLDER, value)
        return path
