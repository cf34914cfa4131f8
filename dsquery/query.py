"""Composite datastore queries: AND, OR, NOT, single queries and caching."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from dsquery.keys import (
    DatastoreClient,
    DatastoreQuery,
    Key,
    extract_keys,
    merge_and,
    merge_not,
)


class QueryError(Exception):
    """Raised when a query or one of its parts fails."""


class Query(ABC):
    """Something that can be run against a datastore client to yield keys."""

    @abstractmethod
    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        """Run the query and return the matching keys."""

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of queries this one is made of."""


def _add_all(mapping: dict[str, Key], keys: Sequence[Optional[Key]]) -> None:
    for key in keys:
        if key is not None:
            mapping[key.encode()] = key


@dataclass(eq=False)
class _Compound(Query):
    queries: list[DatastoreQuery] = field(default_factory=list)
    subqueries: list[Query] = field(default_factory=list)
    name: str = ""

    def _count(self) -> int:
        return len(self.queries) + len(self.subqueries)

    def _steps(
        self, client: DatastoreClient
    ) -> list[tuple[str, Callable[[], Sequence[Optional[Key]]]]]:
        steps: list[tuple[str, Callable[[], Sequence[Optional[Key]]]]] = []
        for i, q in enumerate(self.queries):
            steps.append(
                (
                    f"query error in {self.name}:{i}",
                    lambda q=q: client.get_all(q.keys_only()),
                )
            )
        for i, sub in enumerate(self.subqueries):
            steps.append(
                (
                    f"query error in subquery {self.name}:{i}",
                    lambda sub=sub: sub.query(client),
                )
            )
        return steps


@dataclass(eq=False)
class And(_Compound):
    """Keys matched by every part; stops early once the intersection is empty."""

    def __len__(self) -> int:
        return self._count()

    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        found: dict[str, Key] = {}
        for position, (message, run) in enumerate(self._steps(client)):
            if position > 0 and not found:
                return []
            try:
                keys = run()
            except Exception as exc:
                raise QueryError(f"{message} error {exc}") from exc
            if position == 0:
                _add_all(found, keys)
            else:
                found = merge_and(found, keys)
        return list(extract_keys(found))


@dataclass(eq=False)
class Or(_Compound):
    """Keys matched by any part; the parts run concurrently."""

    def __len__(self) -> int:
        return self._count()

    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        steps = self._steps(client)
        if not steps:
            return []
        found: dict[str, Key] = {}
        failure: Optional[tuple[str, BaseException]] = None
        with ThreadPoolExecutor(max_workers=len(steps)) as pool:
            futures = {pool.submit(run): message for message, run in steps}
            for future in as_completed(futures):
                exc = future.exception()
                if exc is not None:
                    failure = (futures[future], exc)
                    continue
                _add_all(found, future.result())
        if failure is not None:
            message, exc = failure
            raise QueryError(f"{message} error {exc}") from exc
        return list(extract_keys(found))


@dataclass(eq=False)
class Not(_Compound):
    """Keys matched by the plain queries minus those matched by any subquery."""

    def __len__(self) -> int:
        return self._count()

    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        found: dict[str, Optional[Key]] = {}
        for i, q in enumerate(self.queries):
            try:
                keys = client.get_all(q.keys_only())
            except Exception as exc:
                raise QueryError(f"query error in {self.name}:{i} error {exc}") from exc
            _add_all(found, keys)  # type: ignore[arg-type]
        for i, sub in enumerate(self.subqueries):
            try:
                keys = sub.query(client)
            except Exception as exc:
                raise QueryError(
                    f"query error in subquery {self.name}:{i} error {exc}"
                ) from exc
            found = merge_not(found, keys)
        return list(extract_keys(found))


@dataclass(eq=False)
class Ident(Query):
    """A single stored datastore query, run in keys-only mode."""

    stored_query: Optional[DatastoreQuery] = None
    name: str = ""

    def __len__(self) -> int:
        return 1 if self.stored_query is not None else 0

    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        if self.stored_query is None:
            raise QueryError(f"query error in {self.name} error no stored query")
        try:
            keys = client.get_all(self.stored_query.keys_only())
        except Exception as exc:
            raise QueryError(f"query error in {self.name} error {exc}") from exc
        return list(keys) if keys is not None else []


@dataclass(eq=False)
class Cached(Query):
    """A thread-safe cache around another query.

    `ttl` is in seconds; without one, results are kept forever. `expiration`
    is a `time.monotonic()` timestamp, or None for no expiry.
    """

    stored_query: Optional[Query] = None
    stored_results: Optional[list[Optional[Key]]] = None
    name: str = ""
    ttl: Optional[float] = None
    expiration: Optional[float] = None
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def __len__(self) -> int:
        return len(self.stored_query) if self.stored_query is not None else 0

    def _fresh(self) -> bool:
        return self.stored_results is not None and (
            self.expiration is None or time.monotonic() < self.expiration
        )

    def query(self, client: DatastoreClient) -> list[Optional[Key]]:
        if self._fresh():
            return self.stored_results  # type: ignore[return-value]
        with self._lock:
            if self._fresh():
                return self.stored_results  # type: ignore[return-value]
            if self.stored_query is None:
                raise QueryError(f"query error in {self.name} error no stored query")
            try:
                keys = self.stored_query.query(client)
            except Exception as exc:
                raise QueryError(f"query error in {self.name} error {exc}") from exc
            self.stored_results = keys
            if self.ttl is not None and self.ttl > 0:
                self.expiration = time.monotonic() + self.ttl
            return self.stored_results