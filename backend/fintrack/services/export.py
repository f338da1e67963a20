# backend/fintrack/services/export.py
"""
CSV export of record lists.

Usage:
    from fintrack.services.export import array_to_csv

    array_to_csv([{"name": "a,b", "amount": 10}])
    # 'name,amount\\n"a,b",10'
"""

import csv
import io
from collections.abc import Mapping, Sequence
from typing import Any


def array_to_csv(rows: Sequence[Mapping[str, Any]], headers: Sequence[str] | None = None) -> str:
    """
    Render rows as CSV text.

    Args:
        rows: Row mappings; the first row's keys are the columns unless
            headers is given
        headers: Column subset and order

    Returns:
        Header line plus one line per row, joined with "\\n" (no trailing
        newline). Empty input gives "". None renders as an empty cell;
        cells containing a comma, quote or newline are quoted with inner
        quotes doubled.
    """
    if not rows:
        return ""

    columns = list(headers) if headers else list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=columns,
        extrasaction="ignore",
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({column: _cell(row.get(column)) for column in columns})

    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value
