"""Tests for chunked multi-row INSERT generation."""

import re

import pytest

from db_porter.dump.bulk_insert import generate_bulk_insert
from db_porter.errors import UnsupportedConflictConfigurationError
from db_porter.schema.models import ColumnDescriptor

ROWS = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]


# ------------------------------------------------------------------
# Statement shape
# ------------------------------------------------------------------


class TestStatementShape:
    """Verify full statements for plain inserts."""

    def test_sqlite(self):
        assert generate_bulk_insert("tags", ROWS, "sqlite") == [
            "INSERT INTO \"tags\" (\"id\", \"name\") VALUES (1, 'a'), (2, 'b');"
        ]

    def test_postgresql(self):
        assert generate_bulk_insert("tags", ROWS, "postgresql") == [
            "INSERT INTO \"tags\" (\"id\", \"name\") VALUES (1, 'a'), (2, 'b');"
        ]

    def test_mysql(self):
        assert generate_bulk_insert("tags", ROWS, "mysql") == [
            "INSERT INTO `tags` (`id`, `name`) VALUES (1, 'a'), (2, 'b');"
        ]

    def test_columns_drive_order_and_missing_values(self):
        """Column metadata sets the column order; absent keys become NULL."""
        columns = [
            ColumnDescriptor(name="name", logical_type="text"),
            ColumnDescriptor(name="id", logical_type="integer"),
            ColumnDescriptor(name="done", logical_type="boolean"),
        ]
        result = generate_bulk_insert("tags", [{"id": 1, "name": "a"}], "postgresql", columns=columns)
        assert result == [
            "INSERT INTO \"tags\" (\"name\", \"id\", \"done\") VALUES ('a', 1, NULL);"
        ]

    def test_values_encoded_with_column_types(self):
        columns = [
            ColumnDescriptor(name="id", logical_type="integer"),
            ColumnDescriptor(name="done", logical_type="boolean"),
        ]
        result = generate_bulk_insert("t", [{"id": 1, "done": 1}], "postgresql", columns=columns)
        assert result[0].endswith("VALUES (1, TRUE);")

    def test_placeholder_text_in_values_untouched(self):
        """Literal text that looks like a placeholder is not substituted."""
        result = generate_bulk_insert("t", [{"id": 1, "note": "see :r0c0"}], "sqlite")
        assert "VALUES (1, 'see :r0c0');" in result[0]

    def test_reserved_word_identifiers_quoted(self):
        result = generate_bulk_insert("order", [{"select": 1}], "mysql")
        assert result == ["INSERT INTO `order` (`select`) VALUES (1);"]


# ------------------------------------------------------------------
# Chunking
# ------------------------------------------------------------------


class TestChunking:
    """Verify rows are split into ceil(N / chunk_size) statements."""

    def test_chunk_count_and_order(self):
        rows = [{"id": i, "name": f"n{i}"} for i in range(250)]
        statements = generate_bulk_insert("tags", rows, "sqlite", chunk_size=100)
        assert len(statements) == 3
        ids = [int(i) for s in statements for i in re.findall(r"\((\d+), 'n\d+'\)", s)]
        assert ids == list(range(250))
        assert len(re.findall(r"\(\d+, 'n\d+'\)", statements[2])) == 50

    def test_exact_multiple(self):
        rows = [{"id": i} for i in range(4)]
        assert len(generate_bulk_insert("t", rows, "mysql", chunk_size=2)) == 2

    def test_chunk_size_one(self):
        statements = generate_bulk_insert("tags", ROWS, "postgresql", chunk_size=1)
        assert statements == [
            "INSERT INTO \"tags\" (\"id\", \"name\") VALUES (1, 'a');",
            "INSERT INTO \"tags\" (\"id\", \"name\") VALUES (2, 'b');",
        ]

    def test_empty_rows(self):
        assert generate_bulk_insert("tags", [], "sqlite") == []

    @pytest.mark.parametrize("chunk_size", [0, -5])
    def test_invalid_chunk_size(self, chunk_size):
        with pytest.raises(ValueError, match="chunk_size"):
            generate_bulk_insert("tags", ROWS, "sqlite", chunk_size=chunk_size)


# ------------------------------------------------------------------
# Conflict modes
# ------------------------------------------------------------------


class TestConflictModes:
    """Verify ignore and replace clauses per dialect."""

    def test_ignore_sqlite(self):
        sql = generate_bulk_insert("tags", ROWS, "sqlite", conflict_mode="ignore")[0]
        assert sql.startswith("INSERT OR IGNORE INTO \"tags\"")

    def test_ignore_mysql(self):
        sql = generate_bulk_insert("tags", ROWS, "mysql", conflict_mode="ignore")[0]
        assert sql.startswith("INSERT IGNORE INTO `tags`")

    def test_ignore_postgresql(self):
        sql = generate_bulk_insert("tags", ROWS, "postgresql", conflict_mode="ignore")[0]
        assert sql.endswith("ON CONFLICT DO NOTHING;")

    def test_replace_sqlite(self):
        sql = generate_bulk_insert(
            "tags", ROWS, "sqlite", conflict_mode="replace", primary_keys=["id"]
        )[0]
        assert "VALUES (1, 'a'), (2, 'b') ON CONFLICT (\"id\") DO UPDATE SET " in sql
        assert "\"name\" = excluded.\"name\"" in sql

    def test_replace_postgresql(self):
        sql = generate_bulk_insert(
            "tags", ROWS, "postgresql", conflict_mode="replace", primary_keys=["id"]
        )[0]
        assert "ON CONFLICT (\"id\") DO UPDATE SET \"name\" = excluded.\"name\"" in sql

    def test_replace_mysql(self):
        sql = generate_bulk_insert(
            "tags", ROWS, "mysql", conflict_mode="replace", primary_keys=["id"]
        )[0]
        assert sql.endswith("ON DUPLICATE KEY UPDATE `name` = VALUES(`name`);")

    def test_replace_composite_key(self):
        rows = [{"task_id": 1, "tag": "x", "weight": 2}]
        sql = generate_bulk_insert(
            "task_tags", rows, "postgresql", conflict_mode="replace", primary_keys=["task_id", "tag"]
        )[0]
        assert "ON CONFLICT (\"task_id\", \"tag\") DO UPDATE SET \"weight\" = excluded.\"weight\"" in sql

    def test_replace_all_key_columns(self):
        """A table made only of key columns has nothing to update."""
        rows = [{"task_id": 1, "tag": "x"}]
        keys = ["task_id", "tag"]
        sqlite_sql = generate_bulk_insert(
            "task_tags", rows, "sqlite", conflict_mode="replace", primary_keys=keys
        )[0]
        assert sqlite_sql.endswith("ON CONFLICT (\"task_id\", \"tag\") DO NOTHING;")
        mysql_sql = generate_bulk_insert(
            "task_tags", rows, "mysql", conflict_mode="replace", primary_keys=keys
        )[0]
        assert "ON DUPLICATE KEY UPDATE `task_id` = VALUES(`task_id`)" in mysql_sql

    def test_replace_without_primary_key(self):
        with pytest.raises(UnsupportedConflictConfigurationError) as exc_info:
            generate_bulk_insert("logs", ROWS, "sqlite", conflict_mode="replace")
        assert exc_info.value.table == "logs"

    def test_replace_without_primary_key_raises_for_empty_rows(self):
        with pytest.raises(UnsupportedConflictConfigurationError):
            generate_bulk_insert("logs", [], "postgresql", conflict_mode="replace")

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown conflict mode"):
            generate_bulk_insert("tags", ROWS, "sqlite", conflict_mode="merge")
