"""CSV generation utilities for directory exports."""

import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List, Optional


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def generate_csv_content(
    data: List[Dict[str, Any]],
    fields: List[str],
    headers: Optional[Dict[str, str]] = None,
    include_headers: bool = True,
    delimiter: str = ",",
) -> bytes:
    """
    Generate CSV content from a list of dictionaries.

    Args:
        data: List of row dictionaries
        fields: List of field names to include (in order)
        headers: Optional display names for the header row, keyed by field
        include_headers: Whether to include a header row
        delimiter: CSV delimiter character

    Returns:
        CSV content as UTF-8 bytes
    """
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=fields,
        delimiter=delimiter,
        extrasaction="ignore",
    )

    if include_headers:
        if headers:
            writer.writerow({name: headers.get(name, name) for name in fields})
        else:
            writer.writeheader()

    for row in data:
        writer.writerow({name: _format_value(row.get(name)) for name in fields})

    return output.getvalue().encode("utf-8")
