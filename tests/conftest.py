"""공용 픽스처: 메모리 기반 Supabase 더블과 인증 우회 TestClient"""
import copy
import re
import uuid
from typing import Any, Callable, Dict, List, Optional

import pytest

from app.core.time_utils import utcnow

USER = {"id": "user-1", "email": "user@example.com", "app_metadata": {}}
ADMIN = {"id": "admin-1", "email": "admin@example.com", "app_metadata": {"role": "admin"}}


class FakeResult:
    def __init__(self, data: Any, count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


def _compare(op: str, value: Any, target: Any) -> bool:
    if op == "eq":
        return value == target
    if op == "neq":
        return value != target
    if op == "in":
        return value in target
    if op == "is":
        return value is None if target in (None, "null") else value == target
    if op == "ilike":
        pattern = "^" + re.escape(str(target)).replace("%", ".*") + "$"
        return value is not None and re.match(pattern, str(value), re.IGNORECASE) is not None
    if value is None:
        return False
    if op == "gt":
        return value > target
    if op == "gte":
        return value >= target
    if op == "lt":
        return value < target
    if op == "lte":
        return value <= target
    raise AssertionError(f"지원하지 않는 연산자: {op}")


class FakeQuery:
    """supabase-py 쿼리 빌더의 사용하는 부분만 흉내낸 더블"""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.limit_value: Optional[int] = None
        self.range_value: Optional[tuple] = None

    # actions

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self.count_mode = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload: Any, on_conflict: Optional[str] = None, **kwargs) -> "FakeQuery":
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self) -> "FakeQuery":
        self.action = "delete"
        return self

    # filters

    def _filter(self, op: str, column: str, target: Any) -> "FakeQuery":
        self.filters.append(lambda row: _compare(op, row.get(column), target))
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value)

    def neq(self, column, value):
        return self._filter("neq", column, value)

    def gt(self, column, value):
        return self._filter("gt", column, value)

    def gte(self, column, value):
        return self._filter("gte", column, value)

    def lt(self, column, value):
        return self._filter("lt", column, value)

    def lte(self, column, value):
        return self._filter("lte", column, value)

    def in_(self, column, values):
        return self._filter("in", column, list(values))

    def is_(self, column, value):
        return self._filter("is", column, value)

    def ilike(self, column, pattern):
        return self._filter("ilike", column, pattern)

    def match(self, criteria: Dict[str, Any]) -> "FakeQuery":
        for column, value in criteria.items():
            self.eq(column, value)
        return self

    def or_(self, expression: str) -> "FakeQuery":
        clauses = []
        for part in expression.split(","):
            column, op, target = part.split(".", 2)
            clauses.append((op, column, target))
        self.filters.append(lambda row: any(_compare(op, row.get(c), t) for op, c, t in clauses))
        return self

    def order(self, column: str, desc: bool = False, **kwargs) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, value: int) -> "FakeQuery":
        self.limit_value = value
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.range_value = (start, end)
        return self

    # execution

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(f(row) for f in self.filters)

    def _prepare(self, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", utcnow().isoformat())
        return row

    def execute(self) -> FakeResult:
        self.db.calls.append((self.table_name, self.action, copy.deepcopy(self.payload)))
        if self.table_name in self.db.failing_tables:
            raise RuntimeError(f"{self.table_name} is unavailable")
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self._prepare(r) for r in payload]
            rows.extend(inserted)
            return FakeResult(copy.deepcopy(inserted))

        if self.action == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            written = []
            for new in payload:
                existing = next((r for r in rows if all(r.get(k) == new.get(k) for k in keys)), None)
                if existing is not None:
                    existing.update(new)
                    written.append(existing)
                else:
                    created = self._prepare(new)
                    rows.append(created)
                    written.append(created)
            return FakeResult(copy.deepcopy(written))

        matched = [r for r in rows if self._matches(r)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult(copy.deepcopy(matched))

        if self.action == "delete":
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResult(copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        count = len(matched) if self.count_mode else None
        if self.range_value:
            start, end = self.range_value
            matched = matched[start:end + 1]
        if self.limit_value is not None:
            matched = matched[:self.limit_value]
        return FakeResult(copy.deepcopy(matched), count)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]) -> None:
        self.db, self.name, self.params = db, name, params

    def execute(self) -> FakeResult:
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        return FakeResult(handler(self.params) if handler else None)


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = copy.deepcopy(tables or {})
        self.calls: List[tuple] = []
        self.rpc_calls: List[tuple] = []
        self.rpc_handlers: Dict[str, Callable] = {}
        self.failing_tables: set = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def client_factory(supabase):
    """인증과 Supabase 의존성을 더블로 바꾼 TestClient 생성기"""
    from fastapi.testclient import TestClient

    from app.core.dependencies import get_current_user_id, get_optional_user
    from app.database.supabase_client import get_service_supabase, get_supabase
    from app.core.rate_limit import limiter
    from app.main import app

    limiter.enabled = False

    def _make(user: Optional[Dict[str, Any]] = USER) -> TestClient:
        app.dependency_overrides[get_supabase] = lambda: supabase
        app.dependency_overrides[get_service_supabase] = lambda: supabase
        app.dependency_overrides[get_optional_user] = lambda: user
        if user is not None:
            app.dependency_overrides[get_current_user_id] = lambda: user
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
    limiter.enabled = True
