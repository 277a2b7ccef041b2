"""CSV and JSON export of flattened rows."""
import csv
import datetime
import io
import json
from pathlib import Path
from typing import Iterable, Optional, Union

from .models import FlattenedRow, FlattenMetadata
from .rows import as_rows


class ExportError(Exception):
    """Nothing to export."""


def _row_dicts(rows: Iterable[Union[FlattenedRow, dict]]) -> list[dict]:
    return [row.model_dump(exclude_none=True) for row in as_rows(rows)]


def _csv_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        if all(not isinstance(item, (dict, list)) for item in value):
            return "; ".join(str(item) for item in value)
        return json.dumps(value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def to_csv(rows: Iterable[Union[FlattenedRow, dict]]) -> str:
    """Rows as CSV, one column per key present in any row."""
    records = _row_dicts(rows)
    if not records:
        raise ExportError("No data to export")
    headers = sorted({key for record in records for key in record})
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow([_csv_value(record.get(header)) for header in headers])
    return output.getvalue()


def to_json(
    rows: Iterable[Union[FlattenedRow, dict]],
    metadata: Optional[FlattenMetadata] = None,
) -> dict:
    """Rows with metadata and export info."""
    records = _row_dicts(rows)
    if not records:
        raise ExportError("No data to export")
    return {
        "metadata": metadata.model_dump() if metadata is not None else {},
        "data": records,
        "exportInfo": {
            "exportedAt": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "rowCount": len(records),
            "format": "json",
        },
    }


def export_filename(pk: Optional[str], extension: str) -> str:
    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"ars_data_{pk or 'unknown'}_{timestamp}.{extension}"


def write_export(
    rows: Iterable[Union[FlattenedRow, dict]],
    output_dir: Union[str, Path],
    fmt: str = "csv",
    metadata: Optional[FlattenMetadata] = None,
) -> Path:
    """Write rows to a timestamped file in output_dir."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    pk = metadata.pk if metadata is not None else None
    path = output_dir / export_filename(pk, fmt)
    if fmt == "csv":
        path.write_text(to_csv(rows), encoding="utf-8")
    elif fmt == "json":
        path.write_text(json.dumps(to_json(rows, metadata), indent=2), encoding="utf-8")
    else:
        raise ValueError(f"Unsupported export format: {fmt}")
    return path
