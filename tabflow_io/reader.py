"""Record set input helpers."""

# Module responsibilities:
# - Provide a thin wrapper around the pandas readers with strong validation.
# - Emit structured logs for traceability of which table fed which fragment.

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from .utils.log import get_logger

logger = get_logger("reader")

SheetType = Union[str, int, None]

_CSV_SUFFIXES = {".csv"}
_TSV_SUFFIXES = {".tsv", ".tab"}
_EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
_JSON_SUFFIXES = {".json"}


def read_records(
    path: Path,
    sheet: SheetType = None,
    usecols: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Load a flat record set from a CSV, TSV, Excel or JSON file.

    Args:
        path: Path to the source file.
        sheet: Sheet name or index for workbooks; defaults to the first sheet.
        usecols: Optional iterable of columns to include.

    Returns:
        DataFrame holding one record per row.

    Raises:
        FileNotFoundError: When the source file does not exist.
        ValueError: When the suffix is unsupported or pandas fails to parse it.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source table not found: {path}")

    suffix = path.suffix.lower()
    columns = list(usecols) if usecols else None
    logger.info("Reading record set", extra={"path": str(path), "sheet": sheet})

    try:
        if suffix in _CSV_SUFFIXES:
            df = pd.read_csv(path, usecols=columns)
        elif suffix in _TSV_SUFFIXES:
            df = pd.read_csv(path, sep="\t", usecols=columns)
        elif suffix in _EXCEL_SUFFIXES:
            df = pd.read_excel(path, sheet_name=0 if sheet is None else sheet, usecols=columns)
        elif suffix in _JSON_SUFFIXES:
            df = pd.read_json(path, orient="records")
            if columns:
                df = df[columns]
        else:
            raise ValueError(f"unsupported input file: {path}")
    except ValueError as exc:
        logger.error("Failed to read record set", extra={"error": str(exc)})
        raise

    if isinstance(df, dict):
        # pandas returns a dict when sheet_name is a list; this API expects a single sheet.
        raise ValueError("read_records expects a single sheet; received multiple sheets")

    logger.info(
        "Record set loaded",
        extra={"rows": len(df.index), "columns": df.columns.tolist()},
    )
    return df
