"""
Data export for project views.

This module serializes the current view to CSV or JSON. Formatting is pure:
functions return text and a suggested filename, and ``write_export`` is the
only place that touches the filesystem.
"""

import json
import csv
import logging
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union
from dataclasses import dataclass
from enum import Enum

from ..errors import NoDataToExportError, create_error_context
from ..models.entities import Entry
from ..models.schema import FieldDefinition

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""
    CSV = "csv"
    JSON = "json"


MIME_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}


@dataclass
class ExportOptions:
    """Configuration options for data export."""
    format: ExportFormat
    json_indent: int = 2
    exported_at: Optional[datetime] = None  # defaults to the current UTC time


@dataclass
class ExportResult:
    """Formatted export ready for a delivery channel."""
    content: str
    filename: str
    mime_type: str
    entry_count: int

    def encode(self) -> bytes:
        return self.content.encode("utf-8")


def export_filename(project_id: str, format: ExportFormat) -> str:
    """Suggested download name, ``project_<id>.<ext>``."""
    return f"project_{project_id}.{format.value}"


def format_export_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DataExporter:
    """
    Exporter for project views in CSV and JSON formats.

    The exporter performs no filtering or sorting; rows come out in exactly
    the order they were handed in. An empty view raises NoDataToExportError
    instead of producing an empty file.
    """

    def __init__(self):
        """Initialize the data exporter."""
        self.logger = logging.getLogger(__name__)

    def export_entries(
        self,
        entries: Sequence[Entry],
        format: ExportFormat,
        project_id: str,
        fields: Iterable[FieldDefinition],
        options: Optional[ExportOptions] = None
    ) -> ExportResult:
        """
        Export a view in the specified format.

        Args:
            entries: The processed view to export
            format: Export format (CSV or JSON)
            project_id: Project the entries belong to
            fields: Field definitions in column order (used by CSV)
            options: Export configuration options

        Returns:
            ExportResult with text, suggested filename and MIME type

        Raises:
            NoDataToExportError: If ``entries`` is empty
        """
        if options is None:
            options = ExportOptions(format=format)

        self.logger.info(f"Exporting {len(entries)} entries of project {project_id} in {format.value} format")

        if format == ExportFormat.CSV:
            content = self.to_csv(entries, fields, project_id=project_id)
        elif format == ExportFormat.JSON:
            content = self.to_json(entries, project_id, exported_at=options.exported_at,
                                   indent=options.json_indent)
        else:
            raise ValueError(f"Unsupported export format: {format}")

        return ExportResult(
            content=content,
            filename=export_filename(project_id, format),
            mime_type=MIME_TYPES[format],
            entry_count=len(entries)
        )

    def to_csv(self, entries: Sequence[Entry], fields: Iterable[FieldDefinition],
               project_id: Optional[str] = None) -> str:
        """
        Export entries as comma-separated text.

        The header is ``ID`` followed by each field's label. Dropdown codes
        are written as their option label when one matches, otherwise as-is.
        Cells containing a comma, quote or line break are quoted with inner
        quotes doubled.
        """
        self._require_entries(entries, "to_csv", project_id)
        fields = list(fields)

        output = StringIO()
        writer = csv.writer(output, delimiter=",", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        # QUOTE_MINIMAL leaves a bare CR unquoted
        cr_writer = csv.writer(output, delimiter=",", quoting=csv.QUOTE_ALL, lineterminator="\n")

        for row in self._csv_rows(entries, fields):
            if any("\r" in cell for cell in row):
                cr_writer.writerow(row)
            else:
                writer.writerow(row)

        return output.getvalue()

    def _csv_rows(self, entries: Sequence[Entry], fields: List[FieldDefinition]) -> Iterator[List[str]]:
        yield ["ID"] + [definition.label for definition in fields]
        for entry in entries:
            yield [entry.id] + [definition.display_value(entry.get(definition.id)) for definition in fields]

    def to_json(self, entries: Sequence[Entry], project_id: str,
                exported_at: Optional[datetime] = None, indent: int = 2) -> str:
        """
        Export entries as indented JSON inside an envelope.

        The envelope carries ``projectId``, ``exportDate`` and ``entries``;
        entries are written as stored, without coercion or label lookup.
        """
        self._require_entries(entries, "to_json", project_id)

        export_data = {
            "projectId": project_id,
            "exportDate": format_export_timestamp(exported_at),
            "entries": [entry.to_json_dict() for entry in entries]
        }
        return json.dumps(export_data, indent=indent, ensure_ascii=False, default=str)

    def _require_entries(self, entries: Sequence[Entry], operation: str, project_id: Optional[str]) -> None:
        if not entries:
            raise NoDataToExportError(context=create_error_context(operation, project_id=project_id))

    def validate_export_format(self, data: str, format: ExportFormat) -> bool:
        """
        Check that exported text is well formed for its format.

        Args:
            data: Exported data string to validate
            format: Expected format

        Returns:
            True if data is valid for the format
        """
        if format == ExportFormat.JSON:
            return self._validate_json_format(data)
        elif format == ExportFormat.CSV:
            return self._validate_csv_format(data)
        return False

    def _validate_json_format(self, data: str) -> bool:
        """Envelope object with a project id and a list of entry objects."""
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return False

        if not isinstance(parsed, dict) or "projectId" not in parsed:
            return False
        entries = parsed.get("entries")
        if not isinstance(entries, list):
            return False
        return all(isinstance(item, dict) and "id" in item for item in entries)

    def _validate_csv_format(self, data: str) -> bool:
        """Header starting with ``ID`` and every row as wide as the header."""
        try:
            rows = list(csv.reader(StringIO(data)))
        except csv.Error:
            return False

        if not rows or not rows[0] or rows[0][0] != "ID":
            return False

        header_length = len(rows[0])
        return all(len(row) == header_length for row in rows[1:])


def write_export(result: ExportResult, output: Optional[Union[str, Path]] = None,
                 directory: Union[str, Path] = ".") -> Path:
    """
    Deliver an export to disk.

    Args:
        result: Formatted export
        output: Explicit file path; when omitted the suggested filename is used
        directory: Directory for the suggested filename

    Returns:
        Path the export was written to
    """
    path = Path(output) if output else Path(directory) / result.filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(result.encode())
    logger.info(f"Wrote {result.entry_count} entries to {path}")
    return path
