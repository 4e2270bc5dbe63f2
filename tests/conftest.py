import base64
import json
import time
import types
from typing import Any, Dict, List, Optional

import pytest


def make_token(claims: Optional[Dict[str, Any]] = None) -> str:
    """Unsigned JWT carrying ``claims``; only the payload segment matters here."""

    payload = {"sub": "user-1", "exp": int(time.time()) + 3600}
    payload.update(claims or {})

    def _segment(data: Dict[str, Any]) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{_segment({'alg': 'HS256', 'typ': 'JWT'})}.{_segment(payload)}.signature"


class FakeQuery:
    """Minimal PostgREST query builder over in-memory rows."""

    def __init__(self, store: "FakePostgrest", table: str):
        self.store = store
        self.table = table
        self.rows = [dict(row) for row in store.tables.get(table, [])]
        self._limit: Optional[int] = None

    def select(self, _columns: str) -> "FakeQuery":
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.store.calls.append(("eq", self.table, column, value))
        self.rows = [row for row in self.rows if str(row.get(column)) == str(value)]
        return self

    def order(self, column: str, *, desc: bool = False) -> "FakeQuery":
        self.store.calls.append(("order", self.table, column, desc))
        self.rows.sort(key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=desc)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.store.calls.append(("limit", self.table, size))
        self._limit = size
        return self

    def execute(self):
        if self.table in self.store.failures:
            raise self.store.failures[self.table]
        rows = self.rows if self._limit is None else self.rows[: self._limit]
        return types.SimpleNamespace(data=rows)


class FakePostgrest:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def __enter__(self) -> "FakePostgrest":
        return self

    def __exit__(self, *_exc) -> None:
        return None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def eq_filters(self, table: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == "eq" and call[1] == table]


def make_chunk(text: Optional[str]):
    delta = types.SimpleNamespace(content=text)
    return types.SimpleNamespace(choices=[types.SimpleNamespace(delta=delta)])


class FakeCompletionStream:
    def __init__(self, pieces: List[Optional[str]], error: Optional[Exception] = None):
        self.pieces = list(pieces)
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for piece in self.pieces:
            yield make_chunk(piece)
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


class FakeCompletions:
    def __init__(self, stream: Optional[FakeCompletionStream], error: Optional[Exception]):
        self.stream = stream
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.stream


class FakeCompletionClient:
    """Stands in for ``AsyncOpenAI`` in the relay and route tests."""

    def __init__(
        self,
        pieces: Optional[List[Optional[str]]] = None,
        *,
        stream_error: Optional[Exception] = None,
        create_error: Optional[Exception] = None,
    ):
        self.stream = FakeCompletionStream(pieces or [], stream_error)
        self.completions = FakeCompletions(self.stream, create_error)
        self.chat = types.SimpleNamespace(completions=self.completions)


class StaticVerifier:
    """Identity verifier returning a fixed user or raising a fixed error."""

    def __init__(self, user_id: str = "user-1", error: Optional[Exception] = None):
        self.user_id = user_id
        self.error = error
        self.tokens: List[str] = []

    async def verify(self, access_token: str) -> str:
        self.tokens.append(access_token)
        if self.error is not None:
            raise self.error
        return self.user_id


@pytest.fixture
def token() -> str:
    return make_token()


@pytest.fixture
def fake_postgrest():
    return FakePostgrest


@pytest.fixture
def completion_client():
    return FakeCompletionClient


@pytest.fixture
def static_verifier():
    return StaticVerifier


@pytest.fixture
def token_factory():
    return make_token
