"""Shared fixtures: a small SQLite task-tracker database."""

import pytest
from sqlalchemy import create_engine, text

SOURCE_SCHEMA = [
    """
    CREATE TABLE projects (
        id INTEGER PRIMARY KEY,
        name VARCHAR(100) NOT NULL UNIQUE,
        active BOOLEAN DEFAULT 1,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE project_members (
        id INTEGER PRIMARY KEY,
        project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
        user_name TEXT NOT NULL,
        UNIQUE (project_id, user_name)
    )
    """,
    """
    CREATE TABLE tasks (
        id INTEGER PRIMARY KEY,
        project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        status TEXT DEFAULT 'open',
        blocked_by INTEGER REFERENCES tasks(id)
    )
    """,
    """
    CREATE TABLE task_tags (
        task_id INTEGER NOT NULL REFERENCES tasks(id),
        tag TEXT NOT NULL,
        PRIMARY KEY (task_id, tag)
    )
    """,
    """
    CREATE TABLE archive (
        id INTEGER PRIMARY KEY,
        note TEXT
    )
    """,
    "CREATE INDEX idx_tasks_status ON tasks(status)",
    "CREATE INDEX idx_open_tasks ON tasks(project_id) WHERE status = 'open'",
    "CREATE VIEW v_open_tasks AS SELECT id, title FROM tasks WHERE status = 'open'",
]

SOURCE_ROWS = [
    "INSERT INTO projects VALUES (1, 'Alpha', 1, '2025-01-01 10:00:00')",
    "INSERT INTO projects VALUES (2, 'Bob''s', 0, '2025-02-01 12:30:00')",
    "INSERT INTO project_members VALUES (1, 1, 'ann'), (2, 1, 'ben'), (3, 2, 'ann')",
    "INSERT INTO tasks VALUES (1, 1, 'Write docs', 'open', NULL)",
    "INSERT INTO tasks VALUES (2, 1, 'Review', 'done', 1)",
    "INSERT INTO tasks VALUES (3, 2, 'Ship', 'open', 2)",
    "INSERT INTO task_tags VALUES (1, 'docs'), (1, 'urgent'), (3, 'release')",
]


@pytest.fixture
def source_engine(tmp_path):
    """File-backed SQLite database with tables, an index pair and a view."""
    engine = create_engine(f"sqlite:///{tmp_path / 'source.db'}")
    with engine.begin() as conn:
        for statement in SOURCE_SCHEMA + SOURCE_ROWS:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def source_conn(source_engine):
    with source_engine.connect() as conn:
        yield conn
