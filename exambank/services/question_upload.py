"""Service for parsing and validating question bank upload files."""

import io
import re

import pandas as pd

from exambank.schemas.question import QuestionInput


class QuestionUploadParseError(Exception):
    """Raised when file parsing fails."""

    pass


class QuestionUploadValidationError(Exception):
    """Raised when file validation fails."""

    pass


# Accepted spellings per field, in order of preference
COLUMN_ALIASES: dict[str, list[str]] = {
    "question_text": ["Question", "Question Text", "questionText", "question_text"],
    "option_a": ["Option A", "optionA", "A", "option_a"],
    "option_b": ["Option B", "optionB", "B", "option_b"],
    "option_c": ["Option C", "optionC", "C", "option_c"],
    "option_d": ["Option D", "optionD", "D", "option_d"],
    "correct_option": ["Correct Option", "correctOption", "Correct", "Answer", "correct_option"],
}

_WHITESPACE = re.compile(r"\s+")


def _column_key(name: object) -> str:
    return _WHITESPACE.sub("", str(name)).lower()


def parse_upload_file(file_content: bytes, filename: str) -> pd.DataFrame:
    """
    Parse Excel or CSV file and return DataFrame.

    Args:
        file_content: Raw file content as bytes
        filename: Original filename for type detection

    Returns:
        DataFrame with parsed data

    Raises:
        QuestionUploadParseError: If file cannot be parsed
    """
    try:
        file_lower = filename.lower()
        if file_lower.endswith((".xlsx", ".xls")):
            df = pd.read_excel(io.BytesIO(file_content), engine="openpyxl")
        elif file_lower.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(file_content))
        else:
            raise QuestionUploadParseError(f"Unsupported file type. Expected .xlsx, .xls, or .csv, got {filename}")

        # Remove empty rows
        df = df.dropna(how="all")

        if df.empty:
            raise QuestionUploadParseError("File is empty or contains no data")

        return df
    except pd.errors.EmptyDataError:
        raise QuestionUploadParseError("File is empty or contains no data")
    except Exception as e:
        if isinstance(e, (QuestionUploadParseError, QuestionUploadValidationError)):
            raise
        raise QuestionUploadParseError(f"Failed to parse file: {str(e)}")


def resolve_columns(df: pd.DataFrame) -> dict[str, str]:
    """
    Map each question field to the DataFrame column holding it.

    Column names match case-insensitively and ignoring whitespace.

    Args:
        df: DataFrame to inspect

    Returns:
        Dictionary of field name to actual column name

    Raises:
        QuestionUploadValidationError: If a field has no matching column
    """
    available = {}
    for column in df.columns:
        available.setdefault(_column_key(column), column)

    mapping: dict[str, str] = {}
    missing = []
    for field, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            column = available.get(_column_key(alias))
            if column is not None:
                mapping[field] = column
                break
        else:
            missing.append(aliases[0])

    if missing:
        raise QuestionUploadValidationError(
            f"Missing required columns: {', '.join(missing)}. "
            f"Found columns: {', '.join(str(column) for column in df.columns)}"
        )
    return mapping


def _cell_text(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    # Numeric answers come back as floats when the column has gaps
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_question_row(row: pd.Series, columns: dict[str, str]) -> QuestionInput:
    """Parse a single row into a question using the resolved column mapping."""
    return QuestionInput(**{field: _cell_text(row.get(column)) for field, column in columns.items()})


def parse_question_upload(file_content: bytes, filename: str) -> list[QuestionInput]:
    """
    Parse an uploaded question sheet into questions.

    Rows are returned as found; filtering and defaults are left to ingestion.

    Raises:
        QuestionUploadParseError: If file cannot be parsed
        QuestionUploadValidationError: If required columns are missing
    """
    df = parse_upload_file(file_content, filename)
    columns = resolve_columns(df)
    return [parse_question_row(row, columns) for _, row in df.iterrows()]
