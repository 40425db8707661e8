"""Official roll upload parsing (CSV and Excel).

Authority uploads arrive with inconsistent headers; columns are mapped to
roll record fields through a case-insensitive alias table.
"""

from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from evote_api.lib.roll_matcher.comparators import coerce_date

ROLL_COLUMN_ALIASES: dict[str, str] = {
    "name": "full_name",
    "full name": "full_name",
    "full_name": "full_name",
    "voter name": "full_name",
    "candidate name": "full_name",
    "father": "father_name",
    "father name": "father_name",
    "father_name": "father_name",
    "father's name": "father_name",
    "relation name": "father_name",
    "guardian": "father_name",
    "dob": "dob",
    "date of birth": "dob",
    "birth date": "dob",
    "age": "age",
    "gender": "gender",
    "sex": "gender",
    "aadhaar": "aadhaar_number",
    "aadhar": "aadhaar_number",
    "uid": "aadhaar_number",
    "aadhaar no": "aadhaar_number",
    "aadhaar number": "aadhaar_number",
    "aadhaar_number": "aadhaar_number",
    "epic": "epic_number",
    "epic no": "epic_number",
    "epic number": "epic_number",
    "epic_number": "epic_number",
    "voter id": "epic_number",
    "id card": "epic_number",
    "state": "address_state",
    "address state": "address_state",
    "district": "address_district",
    "address district": "address_district",
    "city": "address_city",
    "town": "address_city",
    "village": "address_city",
    "address": "full_address",
    "full address": "full_address",
    "booth": "polling_booth",
    "polling booth": "polling_booth",
    "station": "polling_booth",
    "polling station": "polling_booth",
}

EXCEL_SUFFIXES = frozenset({".xlsx", ".xls"})


def read_roll_file(file_path: Path) -> pd.DataFrame:
    """Read a roll upload into a string-typed DataFrame.

    Raises:
        ValueError: If the file type is not supported.
    """
    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(file_path, dtype=str, keep_default_na=False)
    if suffix in EXCEL_SUFFIXES:
        return pd.read_excel(file_path, dtype=str, keep_default_na=False)
    msg = f"Unsupported roll file type '{suffix}' (expected .csv, .xlsx or .xls)"
    raise ValueError(msg)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_id(value: Any) -> str | None:
    text = _clean(value)
    if text is None:
        return None
    return "".join(text.split()).upper()


def _parse_age(value: Any) -> int | None:
    text = _clean(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def parse_roll_dataframe(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Map a raw upload DataFrame to roll record field dicts.

    Unknown columns are ignored. Rows with neither a name nor an EPIC number
    are dropped.

    Args:
        df: DataFrame as read from the upload.

    Returns:
        List of dicts keyed by RollRecord column names.
    """
    rename_map: dict[str, str] = {}
    for column in df.columns:
        key = str(column).strip().lower()
        target = ROLL_COLUMN_ALIASES.get(key)
        if target and target not in rename_map.values():
            rename_map[column] = target

    unmapped = [str(c) for c in df.columns if c not in rename_map]
    if unmapped:
        logger.debug("Ignoring unmapped roll columns: {}", unmapped)

    mapped = df[list(rename_map)].rename(columns=rename_map)

    rows: list[dict[str, Any]] = []
    dropped = 0
    for raw in mapped.to_dict(orient="records"):
        row: dict[str, Any] = {
            "full_name": _clean(raw.get("full_name")),
            "father_name": _clean(raw.get("father_name")),
            "dob": coerce_date(raw.get("dob")),
            "age": _parse_age(raw.get("age")),
            "gender": _clean(raw.get("gender")),
            "aadhaar_number": _clean_id(raw.get("aadhaar_number")),
            "epic_number": _clean_id(raw.get("epic_number")),
            "address_state": _clean(raw.get("address_state")),
            "address_district": _clean(raw.get("address_district")),
            "address_city": _clean(raw.get("address_city")),
            "full_address": _clean(raw.get("full_address")),
            "polling_booth": _clean(raw.get("polling_booth")),
        }
        if not row["full_name"] and not row["epic_number"]:
            dropped += 1
            continue
        rows.append(row)

    if dropped:
        logger.info("Dropped {} roll rows without a name or EPIC number", dropped)
    return rows


def parse_roll_file(file_path: Path) -> list[dict[str, Any]]:
    """Read and map a roll upload file.

    Args:
        file_path: Path to a .csv, .xlsx or .xls file.

    Returns:
        List of dicts keyed by RollRecord column names.
    """
    df = read_roll_file(file_path)
    df.columns = [str(c).strip() for c in df.columns]
    logger.info("Parsing roll file {} ({} rows)", file_path.name, len(df))
    return parse_roll_dataframe(df)
