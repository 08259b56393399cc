"""
Input File Ingestion Package.

This package reads the CSV and JSON files that describe the desired
authorization state: groups, access patterns, folders, CAS libraries and
capability matrices.
"""

from .file_reader import (
    CASLIBS_SCHEMA,
    FOLDERS_SCHEMA,
    GROUPS_SCHEMA,
    MATRIX_SCHEMA,
    PATTERN_SCHEMA,
    clean_header,
    read_csv,
    read_json,
)

__all__ = [
    "read_csv",
    "read_json",
    "clean_header",
    "GROUPS_SCHEMA",
    "PATTERN_SCHEMA",
    "FOLDERS_SCHEMA",
    "CASLIBS_SCHEMA",
    "MATRIX_SCHEMA",
]
