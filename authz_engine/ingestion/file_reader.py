"""
File reader for the Authorization Model Engine.

Reads the CSV and JSON input files that describe the desired state. CSV
header cells are cleaned of anything that is not a letter or a digit (so a
UTF-8 byte order mark or stray quoting does not break them) and must match
the expected schema exactly.
"""

import csv
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from ..errors import SchemaMismatchError

logger = logging.getLogger(__name__)

GROUPS_SCHEMA = ["ParentGroupID", "GroupID", "GroupName", "UserID"]
PATTERN_SCHEMA = ["Pattern", "Principal", "GrantType", "Permissions"]
FOLDERS_SCHEMA = ["Directory", "Pattern"]
CASLIBS_SCHEMA = ["CASLIB", "Pattern"]
MATRIX_SCHEMA = ["URI", "Principal", "Permissions"]

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]+")


def clean_header(header: Sequence[str]) -> List[str]:
    """Strip every non-alphanumeric character from each header cell."""
    return [_NON_ALPHANUMERIC.sub("", cell) for cell in header]


def read_csv(path: Union[str, Path], schema: Sequence[str]) -> List[Dict[str, str]]:
    """
    Read a CSV file whose header must match a schema.

    Args:
        path: CSV file path
        schema: Expected column names, in order

    Returns:
        One dict per data row, keyed by column name

    Raises:
        SchemaMismatchError: If the cleaned header differs from the schema
        OSError: If the file cannot be opened
    """
    logger.debug(f"Reading file {path}")
    rows: List[Dict[str, str]] = []

    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None:
            raise SchemaMismatchError(str(path), [], schema)

        header = clean_header(header)
        if header != list(schema):
            raise SchemaMismatchError(str(path), header, schema)

        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            # Short rows are padded so every column is present
            record = record + [""] * (len(header) - len(record))
            rows.append(dict(zip(header, record)))

    logger.debug(f"Read {len(rows)} rows from {path}")
    return rows


def read_json(path: Union[str, Path]) -> Any:
    """Read and decode a JSON file."""
    logger.debug(f"Reading file {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)
