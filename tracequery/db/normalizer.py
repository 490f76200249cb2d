"""
Result normalizer -- one portable number type for every numeric cell.

The driver hands back ``int`` for integer and bigint columns,
``decimal.Decimal`` for numeric columns and ``float`` for double precision.
Callers key results by alias and expect a single number representation, so:

  - int      -> float  (values beyond 2**53 lose precision; accepted)
  - Decimal  -> float  (nearest double)
  - float    -> unchanged
  - str, datetime, date, None -> unchanged

Any other type, ``bool`` included, raises ``UnrecognizedCellTypeError``.
"""
from __future__ import annotations

import datetime
import decimal
from typing import Any, Iterable, Mapping

from tracequery.core.errors import UnrecognizedCellTypeError
from tracequery.core.logging import get_logger

logger = get_logger(__name__)

_PASSTHROUGH = (float, str, datetime.datetime, datetime.date)


def normalize_value(column: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        # int subclass, but not a number the database sent
        logger.error("Boolean cell for column %s", column)
        raise UnrecognizedCellTypeError(column, value)
    if isinstance(value, (int, decimal.Decimal)):
        return float(value)
    if isinstance(value, _PASSTHROUGH):
        return value

    logger.error("Unknown type %s for column %s", type(value).__name__, column)
    raise UnrecognizedCellTypeError(column, value)


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Return *rows* with every cell converted to its portable form."""
    return [
        {column: normalize_value(column, value) for column, value in row.items()}
        for row in rows
    ]
