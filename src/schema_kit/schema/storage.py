"""Loading and saving serialized snapshots.

The JSON interchange document is the only persisted artifact.  Loading
validates it against the snapshot models, so a corrupt or incompatible
document fails with ``MalformedSchemaError`` before anything else happens.

Usage:
    from schema_kit.schema.storage import load_schema_from_file, save_schema_to_file

    schema = load_schema_from_file("schema-exports/shop.json")
    save_schema_to_file("schema-exports/shop.sql", "sql", schema)
"""

from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from schema_kit.errors import MalformedSchemaError
from schema_kit.schema.exporters import export_json, export_schema
from schema_kit.schema.models import DatabaseSchema, ExportFormat


def load_schema_from_json(text: str | bytes) -> DatabaseSchema:
    """Parse a JSON interchange document.

    Raises:
        MalformedSchemaError: If the text is not JSON or does not describe
            a valid snapshot, or bytes that are not UTF-8.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedSchemaError(f"Schema document is not UTF-8: {e}") from e
    try:
        return DatabaseSchema.model_validate_json(text)
    except ValidationError as e:
        raise MalformedSchemaError(f"Invalid schema document: {e}") from e


def load_schema_from_file(path: str | Path) -> DatabaseSchema:
    """Read and parse a JSON interchange document.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        MalformedSchemaError: If the file content is not a valid snapshot.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    return load_schema_from_json(path.read_bytes())


def save_schema_to_file(
    path: str | Path,
    fmt: ExportFormat | str,
    schema: DatabaseSchema,
) -> Path:
    """Export ``schema`` and write it to ``path``, creating parent directories.

    Returns:
        The written path.
    """
    content = export_schema(schema, fmt)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def create_schema_backup(
    schema: DatabaseSchema, backup_dir: str | Path = "schema-backups"
) -> Path:
    """Write a dated JSON backup, ``<backup_dir>/schema-backup-YYYY-MM-DD.json``.

    A second backup on the same day overwrites the first.
    """
    date = datetime.now().strftime("%Y-%m-%d")
    path = Path(backup_dir) / f"schema-backup-{date}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_json(schema), encoding="utf-8")
    return path
