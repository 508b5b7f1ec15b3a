from __future__ import annotations

import pytest

from review_import.db.batch_insert import BatchInsertError, InsertResult, batch_insert, validate_identifier


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.rows: list = []
        self.template: str | None = None
        self.page_size: int | None = None

# We monkeypatch execute_values symbol inside module to avoid needing
# a live database for logic tests


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import review_import.db.batch_insert as bi

    def fake_execute_values(cursor, sql, rows, template=None, page_size=1000):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)
        cursor.template = template
        cursor.page_size = page_size

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_basic():
    cur = DummyCursor()
    res = batch_insert(cur, table="performance_records", columns=["import_id", "employee_name"], rows=[[1, "张三"], [1, "赵六"]])
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 2
    assert res.elapsed_seconds >= 0
    assert cur.queries == ['INSERT INTO performance_records ("import_id","employee_name") VALUES %s']
    assert cur.template is None


def test_batch_insert_template_and_page_size():
    cur = DummyCursor()
    batch_insert(cur, table="t", columns=["a", "payload"], rows=[(1, "{}")], page_size=10, template="(%s,%s::jsonb)")
    assert cur.template == "(%s,%s::jsonb)"
    assert cur.page_size == 10


def test_batch_insert_empty_rows():
    cur = DummyCursor()
    res = batch_insert(cur, table="t", columns=["id"], rows=[])
    assert res.inserted_rows == 0
    assert cur.queries == []


@pytest.mark.parametrize("name", ["bad-name", "1abc", "x; drop table y", ""])
def test_invalid_identifiers_rejected(name):
    with pytest.raises(BatchInsertError):
        validate_identifier(name)
    with pytest.raises(BatchInsertError):
        batch_insert(DummyCursor(), table="t", columns=[name], rows=[[1]])


def test_driver_error_is_wrapped(monkeypatch):
    import review_import.db.batch_insert as bi

    def failing(*args, **kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(bi, "execute_values", failing)
    with pytest.raises(BatchInsertError, match="connection lost"):
        batch_insert(DummyCursor(), table="t", columns=["c"], rows=[[1]])
