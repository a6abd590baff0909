"""Typed errors raised by the dump engine.

Only ``ObjectNotFoundError`` for views and indexes is ever caught inside the
engine (the orchestrator turns it into an inline SQL comment). Everything
else propagates to the caller. Connection and catalog failures are not
wrapped: they surface as the SQLAlchemy ``DBAPIError`` raised by the driver.
"""


class DumpError(Exception):
    """Base class for all db-porter errors."""

    pass


class UnsupportedDialectError(DumpError):
    """Raised when a dialect name has no implementation."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(
            f"Unsupported database client: {dialect!r}. "
            f"Supported: sqlite, mysql, postgresql"
        )


class ObjectNotFoundError(DumpError):
    """Raised when a table, view or index cannot be found in the catalog."""

    def __init__(self, object_type: str, name: str, detail: str = ""):
        self.object_type = object_type
        self.name = name
        message = f"{object_type.capitalize()} {name!r} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnsupportedConflictConfigurationError(DumpError, ValueError):
    """Raised when ``replace`` conflict mode is requested without a primary key."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Conflict mode 'replace' requires a primary key, "
            f"but table {table!r} has none"
        )


class ProfileNotFoundError(DumpError):
    """Raised when no database profile is configured."""

    pass
