import io
import logging
import time
import uuid
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from utils.result import Result

logger = logging.getLogger(__name__)

# Required columns, in table order
EXPECTED_HEADERS = ["NTE", "Municipio", "Cod.SEC", "Nome Escola", "Valor"]

EMPTY_FILE_ERROR = "The selected file is empty or in an unsupported format."
MISSING_COLUMNS_ERROR = (
    f"The file is missing required columns. Please ensure it has: {', '.join(EXPECTED_HEADERS)}."
)
PARSE_ERROR = "Failed to parse the XLSX file. Please check the file format and try again."
READ_ERROR = "Failed to read the file."

CellValue = Optional[Union[int, float, str]]


class LogContext:
    """Context manager that logs start, completion or failure and duration of a processing stage"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.get('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={**self.extra, "request_id": self.request_id})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={**self.extra, "request_id": self.request_id, "duration": duration},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={**self.extra, "request_id": self.request_id, "duration": duration}
            )


class RowData(BaseModel):
    """
    One spreadsheet row.

    Attributes are snake_case; aliases hold the column names as they appear
    in the uploaded sheet, so rows validate from and dump to column-keyed dicts.
    """
    model_config = ConfigDict(populate_by_name=True)

    nte: CellValue = Field(default=None, alias="NTE")
    municipio: CellValue = Field(default=None, alias="Municipio")
    cod_sec: CellValue = Field(default=None, alias="Cod.SEC")
    nome_escola: CellValue = Field(default=None, alias="Nome Escola")
    valor: CellValue = Field(default=None, alias="Valor")

    def as_record(self) -> Dict[str, CellValue]:
        return self.model_dump(by_alias=True)

    def cells(self) -> List[str]:
        """Display text of each field, in EXPECTED_HEADERS order."""
        record = self.as_record()
        return [format_cell(record[header]) for header in EXPECTED_HEADERS]


def normalize_cell(value: Any) -> CellValue:
    """
    Convert a pandas cell to a plain str, int, float or None.

    Blank cells (NaN/NaT) become None. Whole-number floats become int.
    Dates become ISO text, without a time part when it is midnight.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, str):
        return value
    if pd.api.types.is_bool(value):
        return str(bool(value)).lower()
    if pd.api.types.is_integer(value):
        return int(value)
    if pd.api.types.is_float(value):
        value = float(value)
        return int(value) if value.is_integer() else value
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def format_cell(value: CellValue) -> str:
    """Text shown for a cell and matched by the search box."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def filter_rows(rows: Iterable[RowData], search_term: Optional[str]) -> List[RowData]:
    """
    Rows whose Cod.SEC contains search_term, case-insensitively.

    An empty search term keeps every row. No other column is searched.
    """
    if not search_term:
        return list(rows)

    needle = search_term.lower()
    return [
        row for row in rows
        if row.cod_sec is not None and needle in format_cell(row.cod_sec).lower()
    ]


class SheetProcessor:
    """
    Turns the bytes of an uploaded workbook into validated rows.

    The first sheet is decoded with pandas, checked for the required
    columns and mapped to RowData. Every expected failure comes back as a
    failed Result carrying the message shown to the user.
    """

    @staticmethod
    def parse_workbook(content: bytes, file_name: Optional[str] = None) -> Result[List[RowData]]:
        """
        Decode and validate an uploaded workbook.

        Args:
            content: Raw bytes of the uploaded file
            file_name: Original file name, used for logging only

        Returns:
            Result[List[RowData]]: The rows, or a failure with EMPTY_FILE_ERROR,
            PARSE_ERROR or MISSING_COLUMNS_ERROR
        """
        log_context = {
            "request_id": str(uuid.uuid4())[:8],
            "file_name": file_name,
            "size_bytes": len(content) if content else 0
        }
        logger.info("Processing uploaded workbook", extra=log_context)

        try:
            with LogContext("workbook decoding", **log_context):
                sheet_result = SheetProcessor._read_first_sheet(content)

            if sheet_result.is_failure():
                logger.warning(f"Workbook decoding failed: {sheet_result.error}", extra=log_context)
                return sheet_result

            df = sheet_result.data
            log_context["row_count"] = len(df)

            with LogContext("column validation", **log_context):
                rows_result = SheetProcessor._validate_columns(df).and_then(SheetProcessor._build_rows)

            if rows_result.is_failure():
                logger.warning(f"Column validation failed: {rows_result.error}", extra=log_context)
                return rows_result

            logger.info(f"Loaded {len(rows_result.data)} rows", extra=log_context)
            return rows_result

        except Exception as e:
            logger.exception("Unexpected error while processing workbook", extra={**log_context, "error": str(e)})
            return Result.fail(PARSE_ERROR)

    @staticmethod
    def _read_first_sheet(content: bytes) -> Result[pd.DataFrame]:
        """
        Read the first sheet into a DataFrame, dropping fully blank rows.
        """
        if not content:
            logger.error("Uploaded file has no content")
            return Result.empty_file(EMPTY_FILE_ERROR)

        try:
            # object dtype keeps text cells such as "0012" as strings
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
        except Exception as e:
            logger.error(
                "Failed to decode workbook",
                extra={"error": str(e), "error_type": type(e).__name__}
            )
            return Result.fail(PARSE_ERROR)

        df = df.dropna(how="all")
        if df.empty:
            logger.warning("Workbook has no data rows")
            return Result.empty_file(EMPTY_FILE_ERROR)

        return Result.ok(df)

    @staticmethod
    def _validate_columns(df: pd.DataFrame) -> Result[pd.DataFrame]:
        """
        Check that every EXPECTED_HEADERS column is present.
        """
        missing_cols = [col for col in EXPECTED_HEADERS if col not in df.columns]

        log_context = {
            "available_columns": [str(col) for col in df.columns],
            "missing_columns": missing_cols
        }

        if missing_cols:
            logger.error("Required columns missing", extra=log_context)
            return Result.missing_columns(MISSING_COLUMNS_ERROR)

        logger.info("Column validation successful", extra=log_context)
        return Result.ok(df)

    @staticmethod
    def _build_rows(df: pd.DataFrame) -> Result[List[RowData]]:
        rows = []
        for record in df[EXPECTED_HEADERS].to_dict(orient="records"):
            rows.append(RowData.model_validate(
                {header: normalize_cell(record[header]) for header in EXPECTED_HEADERS}
            ))
        return Result.ok(rows)
