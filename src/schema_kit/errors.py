"""Exception hierarchy for schema-kit.

Every error raised by the library derives from ``SchemaKitError`` so callers
can catch the whole family at once.  Filtered extraction of a table that
does not exist is *not* an error -- it yields an empty list.

Usage:
    from schema_kit.errors import MalformedSchemaError, ObjectCreationError

    try:
        schema = load_schema_from_file("snapshot.json")
    except MalformedSchemaError as e:
        print(f"Cannot load snapshot: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schema_kit.schema.models import ImportResult


class SchemaKitError(Exception):
    """Base class for all schema-kit errors."""


class MalformedSchemaError(SchemaKitError):
    """Raised when a serialized snapshot is corrupt or incompatible."""


class UnsupportedFormatError(SchemaKitError):
    """Raised when an unknown export format is requested."""


class PreconditionError(SchemaKitError):
    """Raised when an operation cannot start (e.g. clone target missing)."""


class UnsafeIdentifierError(SchemaKitError, ValueError):
    """Raised when an object name falls outside the identifier allowlist."""


class ObjectCreationError(SchemaKitError):
    """A single DDL statement failed while applying a snapshot.

    Only raised when ``skip_errors`` is false.  ``result`` holds everything
    that was created (and the failure itself) up to the point of abort.
    """

    def __init__(
        self,
        object_name: str,
        message: str,
        result: ImportResult | None = None,
    ) -> None:
        super().__init__(f"{object_name}: {message}")
        self.object_name = object_name
        self.message = message
        self.result = result


class ProfileNotFoundError(SchemaKitError):
    """Raised when no database profile is configured."""
