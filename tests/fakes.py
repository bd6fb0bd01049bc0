"""In-memory stand-in for the Supabase AsyncClient query builder.

Supports the subset of the PostgREST builder the taxonomy store uses and
enforces the unique and foreign-key constraints from sql/schema.sql, plus the
``delete_link_node_cascade`` function, which is applied all-or-nothing.
With ``uuid_ids=True`` ids behave like uuid columns: a malformed id fails
with 22P02.

``execute`` yields to the event loop first so concurrent callers interleave
between statements the way separate HTTP round trips would.
"""

import asyncio
import re
import uuid
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional

from postgrest.exceptions import APIError

UNIQUE_KEYS = {
    "link_categories": [("sort_order",)],
    "link_subcategories": [("category_id", "sort_order")],
    "link_subsubcategories": [("subcategory_id", "sort_order")],
    "links": [
        ("category_id", "sort_order"),
        ("subcategory_id", "sort_order"),
        ("subsubcategory_id", "sort_order"),
    ],
}

FOREIGN_KEYS = {
    "link_subcategories": {"category_id": "link_categories"},
    "link_subsubcategories": {"subcategory_id": "link_subcategories"},
    "links": {
        "category_id": "link_categories",
        "subcategory_id": "link_subcategories",
        "subsubcategory_id": "link_subsubcategories",
    },
}

ILIKE_FILTER = re.compile(r'(\w+)\.ilike\."%([^"]*)%"')
ILIKE_ESCAPE = re.compile(r"\\(.)")

ID_COLUMNS = {"id", "category_id", "subcategory_id", "subsubcategory_id"}

CASCADE_CHILDREN = {
    "link_categories": ("link_subcategories", "category_id"),
    "link_subcategories": ("link_subsubcategories", "subcategory_id"),
}
LEVEL_TABLES = {
    "category": ("link_categories", "category_id"),
    "subcategory": ("link_subcategories", "subcategory_id"),
    "subsubcategory": ("link_subsubcategories", "subsubcategory_id"),
}


def _api_error(code: str, message: str) -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


def _unescape(pattern: str) -> str:
    """Undo PostgREST quoted-value escaping, then LIKE escaping."""
    return ILIKE_ESCAPE.sub(r"\1", ILIKE_ESCAPE.sub(r"\1", pattern))


def _unfiled(row: dict) -> bool:
    return all(row.get(c) is None for c in ("category_id", "subcategory_id", "subsubcategory_id"))


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: list = []
        self.orders: list[tuple[str, bool]] = []
        self.limit_count: Optional[int] = None
        self.id_values: list = []

    def select(self, *columns: str, count: Optional[str] = None) -> "FakeQuery":
        self.op = "select"
        return self

    def insert(self, payload: dict) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: dict) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        if column in ID_COLUMNS:
            self.id_values.append(value)
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column: str, value: str) -> "FakeQuery":
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def or_(self, filters: str) -> "FakeQuery":
        clauses = [
            (col, _unescape(pattern).lower()) for col, pattern in ILIKE_FILTER.findall(filters)
        ]
        self.filters.append(
            lambda row: any(needle in (row.get(col) or "").lower() for col, needle in clauses)
        )
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.limit_count = count
        return self

    def _matching(self) -> list[dict]:
        return [row for row in self.db.tables[self.table] if all(f(row) for f in self.filters)]

    async def execute(self) -> SimpleNamespace:
        await self.db.begin(self.table, self.op)
        if self.op == "insert":
            self.id_values.extend(v for k, v in self.payload.items() if k in ID_COLUMNS)
        self.db.check_id_syntax(self.id_values)

        if self.op == "insert":
            data = [self.db.insert(self.table, self.payload)]
        elif self.op == "update":
            data = [self.db.update(self.table, row, self.payload) for row in self._matching()]
        elif self.op == "delete":
            data = [self.db.delete(self.table, row) for row in self._matching()]
        else:
            data = self._matching()
            for column, desc in reversed(self.orders):
                data.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            if self.limit_count is not None:
                data = data[: self.limit_count]
        return SimpleNamespace(data=[dict(row) for row in data], count=None)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", fn: str, params: dict):
        self.db = db
        self.fn = fn
        self.params = params

    async def execute(self) -> SimpleNamespace:
        await self.db.begin("rpc", self.fn)
        assert self.fn == "delete_link_node_cascade"
        self.db.check_id_syntax([self.params["node_id"]])
        return SimpleNamespace(data=self.db.cascade_delete(**self.params), count=None)


class FakeSupabase:
    def __init__(self, uuid_ids: bool = False):
        self.uuid_ids = uuid_ids
        self.before_execute: Optional[Callable[[str, str], None]] = None
        self.tables: dict[str, list[dict]] = {name: [] for name in UNIQUE_KEYS}
        self.executed: list[tuple[str, str]] = []
        self.fail_with: Optional[Exception] = None
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, fn: str, params: dict) -> FakeRpc:
        return FakeRpc(self, fn, params)

    async def begin(self, table: str, op: str) -> None:
        """Common start of every statement: yield, record, inject failures."""
        await asyncio.sleep(0)
        self.executed.append((table, op))
        if self.before_execute is not None:
            self.before_execute(table, op)
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    def check_id_syntax(self, values: list) -> None:
        if not self.uuid_ids:
            return
        for value in values:
            if value is None:
                continue
            try:
                uuid.UUID(str(value))
            except ValueError:
                raise _api_error("22P02", f'invalid input syntax for type uuid: "{value}"') from None

    def snapshot(self) -> dict[str, list[dict]]:
        return {name: [dict(r) for r in rows] for name, rows in self.tables.items()}

    def seed(self, table: str, **row: Any) -> dict:
        return self.insert(table, row)

    # Constraint checks

    def _check_foreign_keys(self, table: str, row: dict) -> None:
        for column, target in FOREIGN_KEYS.get(table, {}).items():
            value = row.get(column)
            if value is not None and not any(r["id"] == value for r in self.tables[target]):
                raise _api_error("23503", f"insert or update on table {table} violates foreign key constraint")

    def _check_unique(self, table: str, row: dict, ignore: Optional[dict] = None) -> None:
        others = [r for r in self.tables[table] if r is not ignore]
        for key in UNIQUE_KEYS[table]:
            values = tuple(row.get(c) for c in key)
            if None in values:
                continue  # NULLs never collide
            if any(tuple(o.get(c) for c in key) == values for o in others):
                raise _api_error("23505", f"duplicate key value violates unique constraint on {table}")
        if table == "links" and _unfiled(row):
            if any(_unfiled(o) and o["sort_order"] == row["sort_order"] for o in others):
                raise _api_error("23505", "duplicate key value violates unique constraint links_unfiled_order_key")

    # Writes

    def insert(self, table: str, payload: dict) -> dict:
        self._clock += timedelta(seconds=1)
        row = {"id": str(uuid.uuid4()), "created_at": self._clock.isoformat(), **payload}
        if table == "links":
            for column in ("category_id", "subcategory_id", "subsubcategory_id"):
                row.setdefault(column, None)
        self._check_foreign_keys(table, row)
        self._check_unique(table, row)
        self.tables[table].append(row)
        return row

    def update(self, table: str, row: dict, payload: dict) -> dict:
        candidate = {**row, **payload}
        self._check_foreign_keys(table, candidate)
        self._check_unique(table, candidate, ignore=row)
        row.update(payload)
        return row

    def delete(self, table: str, row: dict) -> dict:
        for child_table, columns in FOREIGN_KEYS.items():
            for column, target in columns.items():
                if target == table and any(r.get(column) == row["id"] for r in self.tables[child_table]):
                    raise _api_error("23503", f"update or delete on table {table} violates foreign key constraint")
        self.tables[table].remove(row)
        return row

    def cascade_delete(self, node_level: str, node_id: str) -> list[dict]:
        """Delete a node with its links and descendants; roll back on any error."""
        table, link_column = LEVEL_TABLES[node_level]
        saved = deepcopy(self.tables)
        try:
            return self._cascade(table, link_column, node_id)
        except APIError:
            self.tables = saved
            raise

    def _cascade(self, table: str, link_column: str, node_id: str) -> list[dict]:
        for link in [r for r in self.tables["links"] if r.get(link_column) == node_id]:
            self.delete("links", link)
        if table in CASCADE_CHILDREN:
            child_table, parent_column = CASCADE_CHILDREN[table]
            child_link_column = "subcategory_id" if child_table == "link_subcategories" else "subsubcategory_id"
            for child in [r for r in self.tables[child_table] if r[parent_column] == node_id]:
                self._cascade(child_table, child_link_column, child["id"])
        targets = [row for row in self.tables[table] if row["id"] == node_id]
        return [{"deleted_id": self.delete(table, row)["id"]} for row in targets]
