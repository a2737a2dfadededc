# File: app/services/spreadsheet_codec.py
"""
Row-oriented spreadsheet reading and writing.

Parsing reads the first sheet of a workbook (or a CSV file) with the
header row as keys. Serializing writes a single formatted sheet with
pandas and xlsxwriter.
"""

import io
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from app.core.exceptions import ValidationException

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
MAX_COLUMN_WIDTH = 60


def safe_sheet_name(name: str) -> str:
    """Strip characters Excel rejects and truncate to the 31 character limit."""
    cleaned = INVALID_SHEET_CHARS.sub("_", name).strip() or "Sheet1"
    return cleaned[:MAX_SHEET_NAME_LENGTH]


class SpreadsheetCodec:
    """Parses uploaded spreadsheets into rows and serializes rows into workbooks."""

    SUPPORTED_FORMATS = ("excel", "csv")

    def parse(self, file_bytes: bytes, file_format: str = "excel") -> List[Dict[str, Any]]:
        """
        Parse the first sheet of a file into a list of row dicts.

        Blank cells become None and fully blank rows are dropped.

        Args:
            file_bytes: Raw file content
            file_format: "excel" or "csv"

        Returns:
            Rows keyed by header

        Raises:
            ValidationException: If the format is unsupported or the file cannot be read
        """
        file_format = (file_format or "excel").lower()
        if file_format not in self.SUPPORTED_FORMATS:
            raise ValidationException(
                f"Unsupported file format: {file_format}",
                {"file_format": [f"Must be one of: {', '.join(self.SUPPORTED_FORMATS)}"]},
            )
        if not file_bytes:
            raise ValidationException("Empty file", {"file": ["File has no content"]})

        buffer = io.BytesIO(file_bytes)
        try:
            if file_format == "csv":
                df = pd.read_csv(buffer, dtype=str, keep_default_na=False, sep=None, engine="python")
            else:
                df = pd.read_excel(buffer, sheet_name=0)
        except Exception as e:
            logger.error(f"Error parsing {file_format} file: {e}")
            raise ValidationException(
                f"Unable to read {file_format} file", {"file": [str(e)]}
            ) from e

        df.columns = [str(column).strip() for column in df.columns]
        df = df.replace(r"^\s*$", np.nan, regex=True).dropna(how="all")
        df = df.astype(object).where(pd.notna(df), None)
        rows = df.to_dict(orient="records")
        logger.info(f"Parsed {len(rows)} rows from {file_format} file")
        return rows

    def serialize(
        self,
        rows: Sequence[Dict[str, Any]],
        sheet_name: str,
        columns: Optional[Sequence[str]] = None,
    ) -> bytes:
        """
        Write rows to a single-sheet xlsx workbook.

        Args:
            rows: Row dicts
            sheet_name: Sheet name, sanitized and truncated as Excel requires
            columns: Column order; defaults to the keys of the first row

        Returns:
            The workbook as bytes
        """
        df = pd.DataFrame(list(rows), columns=list(columns) if columns is not None else None)
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
            self._write_sheet(writer, df, safe_sheet_name(sheet_name))
        return output.getvalue()

    def build_template(
        self,
        headers: Sequence[str],
        sheet_name: str,
        instructions: Sequence[Tuple[str, ...]],
        title: str,
    ) -> bytes:
        """
        Write an empty import template with an instructions sheet.

        Args:
            headers: Column headers of the data sheet
            sheet_name: Data sheet name
            instructions: Instruction table rows; the first row is its header
            title: Title written above the instruction table
        """
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
            self._write_sheet(writer, pd.DataFrame(columns=list(headers)), safe_sheet_name(sheet_name))

            workbook = writer.book
            instructions_sheet = workbook.add_worksheet("Istruzioni")
            title_format = workbook.add_format({"bold": True, "font_size": 14})
            header_format = workbook.add_format({"bold": True, "bg_color": "#D3D3D3", "border": 1})

            instructions_sheet.write(0, 0, title, title_format)
            for row_num, row in enumerate(instructions, start=2):
                cell_format = header_format if row_num == 2 else None
                for col_num, value in enumerate(row):
                    instructions_sheet.write(row_num, col_num, value, cell_format)
            if instructions:
                for col_num in range(len(instructions[0])):
                    width = max(len(str(row[col_num])) for row in instructions if col_num < len(row))
                    instructions_sheet.set_column(col_num, col_num, min(width + 2, MAX_COLUMN_WIDTH))
        return output.getvalue()

    @staticmethod
    def _write_sheet(writer: pd.ExcelWriter, df: pd.DataFrame, sheet_name: str) -> None:
        df.to_excel(writer, sheet_name=sheet_name, index=False)

        workbook = writer.book
        worksheet = writer.sheets[sheet_name]
        header_format = workbook.add_format({"bold": True, "bg_color": "#D3D3D3", "border": 1})

        for col_num, column in enumerate(df.columns):
            worksheet.write(0, col_num, column, header_format)
            lengths = [len(str(value)) for value in df[column].tolist() if value is not None]
            width = max(lengths + [len(str(column))]) + 2
            worksheet.set_column(col_num, col_num, min(width, MAX_COLUMN_WIDTH))
