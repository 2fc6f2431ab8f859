"""
Workbook parsing.

Turns an uploaded .xlsx, .xls or .csv file into named sheets of row records
for the profiler. Every sheet's first row is its header; cells keep the
raw Python values openpyxl or pandas produce, with blanks as None.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional, Sequence

import numpy as np
import pandas as pd
from fastapi import HTTPException, UploadFile
from openpyxl import load_workbook

from insightforge.core.config import get_settings
from insightforge.core.errors import ErrorCodes, get_error_response
from insightforge.core.performance import track_performance
from insightforge.core.sanitization import sanitize_filename, validate_column_name
from insightforge.core.schemas import ParsedWorkbook, Row, Sheet, WorkbookMetadata

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.xlsx', '.xls', '.csv'}

DANGEROUS_MIME_TYPES = {
    'application/x-executable',
    'application/x-sharedlib',
    'application/x-msdownload',
    'text/html',
    'application/javascript',
}


def _bad_request(code: str, detail: Optional[str] = None) -> HTTPException:
    return HTTPException(status_code=400, detail=get_error_response(code, detail))


def validate_file_extension(filename: str) -> str:
    """Return the lower-cased extension, or raise 400 if it is not supported."""
    if not filename:
        raise _bad_request(ErrorCodes.INVALID_FILE_TYPE, "A file name is required.")

    file_ext = Path(filename).suffix.lower()
    if file_ext not in ALLOWED_EXTENSIONS:
        raise _bad_request(
            ErrorCodes.INVALID_FILE_TYPE,
            f"Unsupported file format: '{file_ext or 'none'}'. "
            f"Allowed formats: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    return file_ext


def validate_mime_type(content_type: Optional[str]) -> None:
    if content_type and content_type.lower() in DANGEROUS_MIME_TYPES:
        raise _bad_request(ErrorCodes.INVALID_FILE_TYPE, f"Content type '{content_type}' is not allowed.")


def _header_names(cells: Sequence[Any]) -> List[str]:
    """Header row to unique column names; blanks become 'Column N'."""
    names: List[str] = []
    seen = set()
    for idx, cell in enumerate(cells, start=1):
        name = ' '.join(str(cell).split()) if cell is not None else ''
        if not name:
            name = f"Column {idx}"
        base, suffix = name, 2
        while name in seen:
            name = f"{base} ({suffix})"
            suffix += 1
        seen.add(name)
        names.append(name)
    return names


def _clean_cell(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.generic):
        return _clean_cell(value.item())
    return value


def _rows_from_values(values: Sequence[Sequence[Any]]) -> List[Row]:
    if not values:
        return []
    header = _header_names([_clean_cell(v) for v in values[0]])
    rows = []
    for raw in values[1:]:
        cells = [_clean_cell(v) for v in raw]
        if all(c is None for c in cells):
            continue
        cells = cells + [None] * (len(header) - len(cells))
        rows.append(dict(zip(header, cells)))
    return rows


def read_xlsx(contents: bytes) -> List[Sheet]:
    """Every worksheet of an .xlsx workbook, in workbook order."""
    wb = load_workbook(BytesIO(contents), read_only=True, data_only=True)
    try:
        sheets = []
        for ws in wb.worksheets:
            values = [tuple(r) for r in ws.iter_rows(values_only=True)]
            # Leading blank rows are not a header
            while values and all(v is None for v in values[0]):
                values.pop(0)
            if not values:
                logger.debug(f"Skipping empty sheet '{ws.title}'")
                continue
            sheets.append(Sheet(name=ws.title, rows=_rows_from_values(values)))
        return sheets
    finally:
        wb.close()


def read_xls(contents: bytes) -> List[Sheet]:
    """Every sheet of a legacy .xls workbook, read through pandas."""
    frames = pd.read_excel(BytesIO(contents), sheet_name=None, header=None)
    sheets = []
    for name, df in frames.items():
        values = df.astype(object).values.tolist()
        while values and all(_clean_cell(v) is None for v in values[0]):
            values.pop(0)
        if not values:
            logger.debug(f"Skipping empty sheet '{name}'")
            continue
        sheets.append(Sheet(name=str(name), rows=_rows_from_values(values)))
    return sheets


def read_csv(contents: bytes) -> List[Sheet]:
    """A CSV file is a workbook with a single sheet."""
    try:
        df = pd.read_csv(BytesIO(contents))
    except UnicodeDecodeError:
        df = pd.read_csv(BytesIO(contents), encoding='latin1')
    values = [list(df.columns)] + df.astype(object).values.tolist()
    return [Sheet(name="Sheet1", rows=_rows_from_values(values))]


READERS = {
    '.xlsx': read_xlsx,
    '.xls': read_xls,
    '.csv': read_csv,
}


def validate_workbook(workbook: ParsedWorkbook) -> None:
    """
    Enforce sheet size limits and header safety.

    Raises:
        HTTPException: 400 when a sheet is too large or a header is unsafe
    """
    settings = get_settings()
    for sheet in workbook.sheets:
        if len(sheet.rows) > settings.max_file_rows:
            raise _bad_request(
                ErrorCodes.FILE_TOO_LARGE,
                f"Sheet '{sheet.name}' has {len(sheet.rows):,} rows; the maximum is {settings.max_file_rows:,}."
            )
        columns = list(sheet.rows[0].keys()) if sheet.rows else []
        if len(columns) > settings.max_file_columns:
            raise _bad_request(
                ErrorCodes.FILE_TOO_LARGE,
                f"Sheet '{sheet.name}' has {len(columns)} columns; the maximum is {settings.max_file_columns}."
            )
        for column in columns:
            if not validate_column_name(column):
                raise _bad_request(ErrorCodes.PARSE_ERROR, f"Invalid column name in sheet '{sheet.name}'.")
        for row in sheet.rows:
            for value in row.values():
                if isinstance(value, str) and len(value) > settings.max_cell_size_bytes:
                    raise _bad_request(
                        ErrorCodes.FILE_TOO_LARGE,
                        f"Sheet '{sheet.name}' contains a cell larger than {settings.max_cell_size_bytes} bytes."
                    )


def parse_contents(contents: bytes, filename: str) -> ParsedWorkbook:
    """Parse raw upload bytes into a workbook."""
    file_ext = validate_file_extension(filename)
    if not contents:
        raise _bad_request(ErrorCodes.FILE_EMPTY)

    try:
        sheets = READERS[file_ext](contents)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error parsing {file_ext} file: {e}")
        raise _bad_request(ErrorCodes.PARSE_ERROR)

    if not sheets:
        raise _bad_request(ErrorCodes.NO_SHEETS)

    workbook = ParsedWorkbook(
        sheets=sheets,
        metadata=WorkbookMetadata(
            sheet_names=[s.name for s in sheets],
            total_rows=sum(len(s.rows) for s in sheets),
            total_columns=max((len(s.rows[0]) if s.rows else 0) for s in sheets),
            file_name=sanitize_filename(filename),
            file_size=len(contents),
        ),
    )
    validate_workbook(workbook)
    return workbook


@track_performance("parse_workbook")
async def parse_workbook(file: UploadFile) -> ParsedWorkbook:
    """
    Parse an uploaded file.

    Raises:
        HTTPException: 400 for unsupported, empty, unreadable or oversized files
    """
    validate_file_extension(file.filename)
    validate_mime_type(file.content_type)
    contents = await file.read()
    workbook = parse_contents(contents, file.filename)
    logger.info(
        f"Parsed workbook {workbook.metadata.file_name}: "
        f"{len(workbook.sheets)} sheets, {workbook.metadata.total_rows} rows"
    )
    return workbook


SAMPLE_REGIONS = ["North", "South", "East", "West"]
SAMPLE_PRODUCTS = ["A", "B", "C", "D"]
SAMPLE_PRICES = [29, 49, 79, 99]
SAMPLE_KINDS = ("sales", "finance", "survey", "ops")


def generate_sample_dataset(kind: str = "sales", days: int = 120, seed: Optional[int] = None,
                            today: Optional[datetime] = None) -> ParsedWorkbook:
    """Demo workbook: one row per day of units, prices, revenue and ratings."""
    if kind not in SAMPLE_KINDS:
        raise ValueError(f"kind must be one of {SAMPLE_KINDS}, got '{kind}'")

    rng = np.random.default_rng(seed)
    now = today or datetime.now(timezone.utc)
    rows: List[Row] = []
    for i in range(days):
        day = now - timedelta(days=days - i)
        units = int(rng.integers(10, 100))
        price = int(rng.choice(SAMPLE_PRICES))
        revenue = float(units * price * (0.8 + rng.random() * 0.4))
        expense = revenue * (0.4 + rng.random() * 0.2)
        rows.append({
            "Date": day.strftime('%Y-%m-%d'),
            "Region": str(rng.choice(SAMPLE_REGIONS)),
            "Product": str(rng.choice(SAMPLE_PRODUCTS)),
            "Units": units,
            "Price": price,
            "Revenue": round(revenue, 2),
            "Expense": round(expense, 2),
            "KPI": round(rng.random() * 100, 2),
            "Rating": int(rng.integers(1, 6)),
        })

    return ParsedWorkbook(
        sheets=[Sheet(name="Sheet1", rows=rows)],
        metadata=WorkbookMetadata(
            sheet_names=["Sheet1"],
            total_rows=len(rows),
            total_columns=len(rows[0]) if rows else 0,
            file_name=f"sample-{kind}.xlsx",
            file_size=len(rows) * 100,
        ),
    )
