"""Datastore keys, queries, the client protocol and key-set helpers."""

from __future__ import annotations

import base64
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

_OPERATORS = frozenset({"=", "<", "<=", ">", ">=", "!=", "in", "not-in"})


@dataclass(frozen=True)
class Key:
    """A datastore entity key, identified by kind and either a name or a numeric id."""

    kind: str
    name: Optional[str] = None
    id: Optional[int] = None
    parent: Optional["Key"] = None
    namespace: str = ""

    def __post_init__(self) -> None:
        if self.name is not None and self.id is not None:
            raise ValueError("a key has either a name or an id, not both")

    def _path(self) -> list[list[Any]]:
        path = []
        key: Optional[Key] = self
        while key is not None:
            path.append([key.kind, key.name, key.id])
            key = key.parent
        path.reverse()
        return path

    def encode(self) -> str:
        """Return an opaque, URL-safe string that uniquely identifies this key."""
        payload = json.dumps(
            {"ns": self.namespace, "path": self._path()},
            separators=(",", ":"),
            sort_keys=True,
        )
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")

    def __str__(self) -> str:
        parts = []
        for kind, name, ident in self._path():
            parts.append(f"{kind},{name if name is not None else ident}")
        return "/" + "/".join(parts)


@dataclass(frozen=True)
class DatastoreQuery:
    """An immutable description of a datastore query."""

    kind: str = ""
    filters: tuple[tuple[str, str, Any], ...] = field(default=())
    is_keys_only: bool = False

    def filter_field(self, name: str, op: str, value: Any) -> "DatastoreQuery":
        """Return a copy of this query with a field filter added."""
        op = op.strip()
        if op not in _OPERATORS:
            raise ValueError(f"invalid operator {op!r} in filter")
        return replace(self, filters=self.filters + ((name, op, value),))

    def keys_only(self) -> "DatastoreQuery":
        """Return a copy of this query that yields only keys."""
        return replace(self, is_keys_only=True)


@runtime_checkable
class DatastoreClient(Protocol):
    """The datastore operation the composite queries need."""

    def get_all(self, query: DatastoreQuery) -> Sequence[Optional[Key]]:
        """Run `query` and return every matching key."""


def extract_keys(mapping: Mapping[str, Optional[Key]]) -> list[Key]:
    """Return the keys held in an encoded-key mapping, skipping empty entries."""
    return [key for key in mapping.values() if key is not None]


def merge_and(
    mapping: Mapping[str, Optional[Key]], keys: Iterable[Optional[Key]]
) -> dict[str, Key]:
    """Return the keys of `keys` that are also present in `mapping`."""
    result: dict[str, Key] = {}
    for key in keys:
        if key is None:
            continue
        encoded = key.encode()
        if encoded in mapping:
            result[encoded] = key
    return result


def merge_not(
    mapping: Mapping[str, Optional[Key]], keys: Iterable[Optional[Key]]
) -> dict[str, Optional[Key]]:
    """Return a copy of `mapping` with every key in `keys` removed."""
    result = dict(mapping)
    for key in keys:
        if key is not None:
            result.pop(key.encode(), None)
    return result