# dsquery

Build composite datastore queries from plain key-only queries. The query tree
is evaluated in Python and returns the matching keys.

- `And` keeps the keys that every part returns. It stops early once the
  running result is empty.
- `Or` merges the keys from every part. The parts run concurrently in a thread
  pool; if any part fails, a `QueryError` is raised after all have finished.
- `Not` takes the keys from its direct queries and removes every key that any
  of its subqueries returns.
- `Ident` wraps a single query. Use it to name a step or to fix where it runs.
- `Cached` stores the result of another query, optionally with a time-to-live.
  Access to it is thread safe.

Every failure is raised as `dsquery.query.QueryError`, with a message naming
the node and the position of the part that failed, and the original exception
chained as its cause.

## Installation

```
pip install dsquery
```

## Usage

Any object with a `get_all(query)` method that returns a sequence of `Key`
objects (entries may be `None`; they are skipped) can act as the client. That
method is described by the `DatastoreClient` protocol in `dsquery.keys`.

Queries are described with `DatastoreQuery`, which is immutable:
`filter_field(name, op, value)` returns a copy with a filter added (operators
`=`, `<`, `<=`, `>`, `>=`, `!=`, `in`, `not-in`; anything else raises
`ValueError`), and `keys_only()` returns a keys-only copy. Composite nodes
always pass keys-only copies to the client.

```python
from dsquery.keys import DatastoreQuery
from dsquery.query import And, Or, Ident, QueryError

fruit = DatastoreQuery("Fruit")

query = And(
    name="example",
    subqueries=[
        Or(
            name="color",
            queries=[
                fruit.filter_field("Color", "=", "Orange"),
                fruit.filter_field("Color", "=", "Red"),
            ],
        ),
        Ident(name="producer", stored_query=fruit.filter_field("Producers", "=", "China")),
    ],
)

try:
    keys = query.query(client)
except QueryError as exc:
    print("query failed:", exc)
```

`len(query)` gives the number of queries and subqueries that a node holds
directly. For `Ident` it is 1 when a query is stored and 0 otherwise; for
`Cached` it is the length of the wrapped query.

## Keys

`Key(kind, name=None, id=None, parent=None, namespace="")` identifies an
entity by kind and either a name or a numeric id (giving both raises
`ValueError`). `Key.encode()` returns an opaque URL-safe string that is unique
to the key and its ancestors; it is what the set operations compare.

## Caching

Wrap any query in `Cached`. `ttl` is a number of seconds:

```python
from dsquery.query import Cached

cached = Cached(stored_query=query, ttl=300)
cached.query(client)   # runs the query
cached.query(client)   # served from the cache until the TTL expires
```

If no TTL is given, the cached result never expires. Results can also be
supplied up front with `stored_results=[...]`; they are then returned without
running the wrapped query.

## Helpers

`dsquery.keys` also provides set helpers. Each one works on a mapping from
encoded key to `Key`:

- `extract_keys(mapping)` returns the keys in the mapping and skips `None`
  entries.
- `merge_and(mapping, keys)` returns a mapping of the keys that appear in both
  the mapping and the list.
- `merge_not(mapping, keys)` returns a copy of the mapping without the keys in
  the list.

## What it does not do

The package holds no datastore client of its own and does not talk to any
datastore service. It only evaluates query trees against a client you supply,
and it returns keys, not entities; fetching entities for those keys is left to
your client.

## Running the tests

```
pip install -e ".[test]"
pytest
```