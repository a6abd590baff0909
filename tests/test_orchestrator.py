"""Tests for dump planning and full-script generation."""

import logging
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, text

from db_porter.dump.models import DumpOptions
from db_porter.dump.orchestrator import generate_dump, plan_dump
from db_porter.dump.script import generate_header, generate_sequence_resets
from db_porter.errors import ObjectNotFoundError, UnsupportedConflictConfigurationError
from db_porter.schema.introspector import SQLiteIntrospector, get_introspector


# ------------------------------------------------------------------
# Planning
# ------------------------------------------------------------------


class TestPlanDump:
    """Verify tables are described, ordered and counted."""

    def test_dependency_order(self, source_conn):
        plan = plan_dump(source_conn, "postgresql")
        assert plan.table_names == [
            "archive",
            "projects",
            "project_members",
            "tasks",
            "task_tags",
        ]

    def test_row_counts(self, source_conn):
        plan = plan_dump(source_conn, "mysql")
        counts = {t.name: t.row_count for t in plan.tables}
        assert counts == {
            "archive": 0,
            "projects": 2,
            "project_members": 3,
            "tasks": 3,
            "task_tags": 3,
        }
        assert plan.total_rows == 11

    def test_explicit_tables(self, source_conn):
        plan = plan_dump(source_conn, "sqlite", DumpOptions(tables=["tasks", "projects"]))
        assert plan.table_names == ["projects", "tasks"]

    def test_unknown_table(self, source_conn):
        with pytest.raises(ObjectNotFoundError) as exc_info:
            plan_dump(source_conn, "sqlite", DumpOptions(tables=["missing"]))
        assert exc_info.value.name == "missing"

    def test_options_carried(self, source_conn):
        plan = plan_dump(source_conn, "pg", DumpOptions(chunk_size=5, conflict_mode="ignore"))
        assert plan.target == "postgresql"
        assert plan.chunk_size == 5
        assert plan.conflict_mode == "ignore"


# ------------------------------------------------------------------
# Script envelope
# ------------------------------------------------------------------


class TestScriptPieces:
    def test_header(self):
        header = generate_header("postgresql", 3)
        lines = header.splitlines()
        assert lines[0] == "-- SQL Dump generated by db-porter"
        assert lines[1].startswith("-- Date: ")
        assert "-- Target: POSTGRESQL" in lines
        assert "-- Tables: 3" in lines
        assert "-- Usage: psql -d mydb -f dump.sql" in lines

    def test_sequence_resets_for_postgresql(self, source_conn):
        plan = plan_dump(source_conn, "postgresql", DumpOptions(tables=["projects", "task_tags"]))
        assert generate_sequence_resets(plan) == [
            "SELECT setval(pg_get_serial_sequence('\"projects\"', 'id'), "
            "COALESCE((SELECT MAX(\"id\") FROM \"projects\"), 1), "
            "(SELECT MAX(\"id\") FROM \"projects\") IS NOT NULL);"
        ]

    def test_no_sequence_resets_elsewhere(self, source_conn):
        assert generate_sequence_resets(plan_dump(source_conn, "mysql")) == []


class TestGenerateDump:
    """Verify the assembled script."""

    def test_sqlite_envelope_order(self, source_conn):
        sql = generate_dump(source_conn, "sqlite")
        markers = [
            "-- SQL Dump generated by db-porter",
            "PRAGMA foreign_keys = OFF;",
            "BEGIN TRANSACTION;",
            "-- Schema (CREATE TABLE statements)",
            "-- Views",
            "-- Indexes",
            "-- Data (INSERT statements)",
            "COMMIT;",
            "PRAGMA foreign_keys = ON;",
        ]
        positions = [sql.index(marker) for marker in markers]
        assert positions == sorted(positions)
        assert sql.endswith("PRAGMA foreign_keys = ON;\n")

    def test_mysql_envelope(self, source_conn):
        sql = generate_dump(source_conn, "mysql")
        assert "SET FOREIGN_KEY_CHECKS=0;" in sql
        assert "START TRANSACTION;" in sql
        assert sql.endswith("SET FOREIGN_KEY_CHECKS=1;\n")

    def test_postgresql_envelope(self, source_conn):
        sql = generate_dump(source_conn, "postgresql")
        assert "SET session_replication_role = replica;" in sql
        assert "\nBEGIN;\n" in sql
        assert "-- Reset sequences" in sql
        assert sql.index("-- Reset sequences") < sql.index("COMMIT;")

    def test_without_header(self, source_conn):
        sql = generate_dump(source_conn, "sqlite", DumpOptions(include_header=False))
        assert sql.startswith("PRAGMA foreign_keys = OFF;")

    def test_tables_in_dependency_order(self, source_conn):
        sql = generate_dump(source_conn, "sqlite")
        creates = [sql.index(f'CREATE TABLE IF NOT EXISTS "{t}"') for t in
                   ["archive", "projects", "project_members", "tasks", "task_tags"]]
        assert creates == sorted(creates)

    def test_schema_only(self, source_conn):
        """chunk_size=0 keeps schema and envelope and drops data."""
        sql = generate_dump(source_conn, "postgresql", DumpOptions(chunk_size=0))
        assert "CREATE TABLE" in sql
        assert "INSERT" not in sql
        assert "-- Data (INSERT statements)" not in sql
        assert "BEGIN;" in sql and "COMMIT;" in sql

    def test_data_only(self, source_conn):
        sql = generate_dump(source_conn, "mysql", DumpOptions(include_schema=False))
        assert "CREATE TABLE" not in sql
        assert "CREATE VIEW" not in sql
        assert "INSERT INTO `projects`" in sql

    def test_empty_table_comment(self, source_conn):
        sql = generate_dump(source_conn, "sqlite")
        assert "-- Data for table: archive\n-- No data in table archive\n" in sql
        assert 'INSERT INTO "archive"' not in sql

    def test_mysql_types_and_values(self, source_conn):
        sql = generate_dump(source_conn, "mysql")
        assert "`id` INT NOT NULL AUTO_INCREMENT" in sql
        assert "`name` VARCHAR(100) NOT NULL UNIQUE" in sql
        assert "`active` TINYINT(1) DEFAULT 1" in sql
        assert "`created_at` DATETIME DEFAULT CURRENT_TIMESTAMP" in sql
        assert "`tag` VARCHAR(191) NOT NULL" in sql
        assert "ENGINE=InnoDB" in sql
        assert "VALUES (1, 'Alpha', 1, '2025-01-01 10:00:00'), (2, 'Bob''s', 0, " in sql

    def test_postgresql_types_and_values(self, source_conn):
        sql = generate_dump(source_conn, "postgresql")
        assert '"id" SERIAL NOT NULL' in sql
        assert '"active" BOOLEAN DEFAULT TRUE' in sql
        assert '"created_at" TIMESTAMP DEFAULT CURRENT_TIMESTAMP' in sql
        assert "(1, 'Alpha', TRUE, '2025-01-01 10:00:00'::timestamp)" in sql
        assert "(2, 'Bob''s', FALSE, '2025-02-01 12:30:00'::timestamp)" in sql

    def test_mysql_indexes(self, source_conn, caplog):
        with caplog.at_level(logging.WARNING):
            sql = generate_dump(source_conn, "mysql")
        assert "CREATE INDEX `idx_tasks_status` ON `tasks` (`status`(191));" in sql
        assert "CREATE INDEX `idx_open_tasks` ON `tasks` (`project_id`);" in sql
        assert "Dropping partial index predicate" in caplog.text

    def test_chunked_inserts(self, source_conn):
        sql = generate_dump(source_conn, "sqlite", DumpOptions(chunk_size=2))
        assert sql.count('INSERT INTO "tasks"') == 2
        assert sql.count('INSERT INTO "project_members"') == 2

    def test_ignore_mode(self, source_conn):
        sql = generate_dump(source_conn, "postgresql", DumpOptions(conflict_mode="ignore"))
        assert sql.count("ON CONFLICT DO NOTHING;") == 4

    def test_replace_mode(self, source_conn):
        sql = generate_dump(source_conn, "sqlite", DumpOptions(conflict_mode="replace"))
        assert "-- Primary key(s): id\n" in sql
        assert "-- Primary key(s): task_id, tag\n" in sql
        assert 'ON CONFLICT ("id") DO UPDATE SET "project_id" = excluded."project_id"' in sql
        assert 'ON CONFLICT ("task_id", "tag") DO NOTHING;' in sql

    def test_replace_without_primary_key(self, source_conn):
        source_conn.execute(text("CREATE TABLE audit_log (event TEXT)"))
        with pytest.raises(UnsupportedConflictConfigurationError) as exc_info:
            generate_dump(source_conn, "mysql", DumpOptions(conflict_mode="replace"))
        assert exc_info.value.table == "audit_log"

    def test_view_failure_becomes_comment(self, source_conn, caplog):
        error = ObjectNotFoundError("view", "v_open_tasks", "no definition in catalog")
        with patch.object(SQLiteIntrospector, "get_view", side_effect=error):
            with caplog.at_level(logging.WARNING):
                sql = generate_dump(source_conn, "postgresql")
        assert (
            "-- Warning: Could not create view v_open_tasks: "
            "View 'v_open_tasks' not found: no definition in catalog"
        ) in sql
        assert "CREATE VIEW" not in sql
        assert "v_open_tasks" in caplog.text

    def test_view_translated(self, source_conn):
        sql = generate_dump(source_conn, "mysql")
        assert (
            "CREATE VIEW `v_open_tasks` AS SELECT id, title FROM tasks WHERE status = 'open';"
        ) in sql

    def test_connection_left_open(self, source_conn):
        generate_dump(source_conn, "sqlite")
        assert not source_conn.closed


# ------------------------------------------------------------------
# Round trip
# ------------------------------------------------------------------


class TestSQLiteRoundTrip:
    """A SQLite dump replayed into an empty SQLite database reproduces it."""

    def test_round_trip(self, source_conn, tmp_path):
        sql = generate_dump(source_conn, "sqlite")

        target = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
        try:
            raw = target.raw_connection()
            try:
                raw.driver_connection.executescript(sql)
            finally:
                raw.close()

            with target.connect() as conn:
                source = get_introspector(source_conn)
                copy = get_introspector(conn)
                assert copy.list_tables() == source.list_tables()
                assert copy.list_views() == ["v_open_tasks"]
                assert [i.name for i in copy.list_indexes("tasks")] == [
                    "idx_open_tasks",
                    "idx_tasks_status",
                ]
                for table in source.list_tables():
                    original = source.describe_table(table)
                    copied = copy.describe_table(table)
                    assert copied.primary_key_columns == original.primary_key_columns
                    assert copied.column_names == original.column_names
                    assert [u.columns for u in copied.composite_uniques] == [
                        u.columns for u in original.composite_uniques
                    ]
                    assert {tuple(fk.columns) for fk in copied.foreign_keys} == {
                        tuple(fk.columns) for fk in original.foreign_keys
                    }
                    keys = original.primary_key_columns
                    assert copy.fetch_rows(table, keys) == source.fetch_rows(table, keys)

                rows = conn.execute(text("SELECT title FROM v_open_tasks ORDER BY id")).all()
                assert [r[0] for r in rows] == ["Write docs", "Ship"]
        finally:
            target.dispose()

    def test_replay_is_idempotent_with_ignore(self, source_conn, tmp_path):
        """CREATE TABLE IF NOT EXISTS plus INSERT OR IGNORE can run twice."""
        sql = generate_dump(
            source_conn,
            "sqlite",
            DumpOptions(conflict_mode="ignore", tables=["projects", "tasks"]),
        )
        target = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
        try:
            raw = target.raw_connection()
            try:
                raw.driver_connection.executescript(sql.replace("CREATE VIEW", "-- "))
                raw.driver_connection.executescript(
                    sql.replace("CREATE VIEW", "-- ").replace("CREATE INDEX", "CREATE INDEX IF NOT EXISTS")
                )
            finally:
                raw.close()
            with target.connect() as conn:
                assert conn.execute(text("SELECT COUNT(*) FROM tasks")).scalar() == 3
        finally:
            target.dispose()


class TestValueRoundTrip:
    """Awkward values survive dump and replay unchanged."""

    @pytest.mark.parametrize(
        "column, value",
        [
            ("label", "héllo wörld ✓ 日本"),
            ("label", "it's"),
            ("label", "back\\slash and \\'mixed\\'"),
            ("label", "line\nbreak"),
            ("label", ""),
            ("label", None),
            ("payload", b"\x00\x01\xfe\xff"),
            ("doc", '{"k": [1, 2], "s": "v\\"q"}'),
            ("amount", 9007199254740993),
            ("amount", 2**63 - 1),
            ("amount", -1),
        ],
    )
    def test_value_survives(self, source_conn, tmp_path, column, value):
        source_conn.execute(
            text(
                "CREATE TABLE samples ("
                "id INTEGER PRIMARY KEY, label TEXT, payload BLOB, doc JSON, amount BIGINT)"
            )
        )
        source_conn.execute(
            text(f"INSERT INTO samples (id, {column}) VALUES (1, :value)"), {"value": value}
        )
        sql = generate_dump(source_conn, "sqlite", DumpOptions(tables=["samples"]))

        target = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
        try:
            raw = target.raw_connection()
            try:
                raw.driver_connection.executescript(sql.replace("CREATE VIEW", "-- "))
            finally:
                raw.close()
            with target.connect() as conn:
                copied = conn.execute(text(f"SELECT {column} FROM samples WHERE id = 1")).scalar()
        finally:
            target.dispose()

        assert copied == value
        assert type(copied) is type(value)
