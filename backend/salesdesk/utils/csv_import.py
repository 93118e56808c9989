"""CSV reading and template generation for bulk catalog import.

Column names are passed through untouched; mapping header variants to
fields is the catalog's job (`salesdesk.domain.catalog.normalize_fields`).
"""

import csv
import io
from dataclasses import dataclass, field

from fastapi import UploadFile

from salesdesk.middleware.exceptions import ValidationError


@dataclass
class FieldDef:
    """Definition for a single CSV column in the downloadable template."""
    column: str
    db_field: str
    required: bool = False


@dataclass
class CsvRows:
    header: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    blank_rows: int = 0


async def read_csv(file: UploadFile) -> CsvRows:
    """Read an uploaded CSV into a list of raw row dicts.

    Fully blank lines are skipped and counted.  A header row is required.
    """
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")  # handle BOM from Excel
    except UnicodeDecodeError:
        raise ValidationError("file", "must be a UTF-8 encoded CSV")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("file", "must start with a header row")

    result = CsvRows(header=[name.strip() for name in reader.fieldnames])
    for raw_row in reader:
        cleaned = {
            (key or "").strip(): (value or "").strip()
            for key, value in raw_row.items()
            if key is not None
        }
        if not any(cleaned.values()):
            result.blank_rows += 1
            continue
        result.rows.append(cleaned)
    return result


def generate_template_csv(
    field_defs: list[FieldDef],
    sample_row: dict[str, str] | None = None,
) -> str:
    """Generate CSV template string with headers and optional sample row."""
    output = io.StringIO()
    headers = [fd.column for fd in field_defs]
    writer = csv.writer(output)
    writer.writerow(headers)
    if sample_row:
        writer.writerow([sample_row.get(h, "") for h in headers])
    return output.getvalue()
