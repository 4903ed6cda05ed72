"""Tests for database schema creation."""

from freshkeep.db.schema import _SCHEMA_VERSION, ensure_schema


def test_ensure_schema_creates_tables(tmp_path):
    """Schema creates the item, reminder and version tables."""
    conn = ensure_schema(tmp_path / "test.db")

    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    table_names = {row["name"] for row in tables}

    assert "grocery_items" in table_names
    assert "reminders" in table_names
    assert "schema_version" in table_names

    conn.close()


def test_ensure_schema_creates_parent_dirs(tmp_path):
    db_path = tmp_path / "sub" / "dir" / "test.db"
    conn = ensure_schema(db_path)
    assert db_path.exists()
    conn.close()


def test_ensure_schema_is_idempotent(tmp_path):
    """Opening twice keeps a single version row."""
    db_path = tmp_path / "test.db"
    ensure_schema(db_path).close()
    conn = ensure_schema(db_path)

    rows = conn.execute("SELECT version FROM schema_version").fetchall()
    assert [r["version"] for r in rows] == [_SCHEMA_VERSION]
    conn.close()
