#!/usr/bin/env python3
"""
ChildFirst Backup Validation Tool

Standalone utility for checking a backup file against the bundled
backup schema before restoring it.

Usage:
    python tools/validate_schema.py <backup_file>

Example:
    python tools/validate_schema.py childfirst_data/exports/childfirst-backup-2024-01-02.json
"""

import argparse
import json
import sys
from pathlib import Path

import jsonschema


SCHEMA_PATH = Path(__file__).parent.parent / "childfirst" / "schemas" / "backup.schema.json"


def load_schema() -> dict:
    """Load the backup schema."""
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def validate_document(document, schema: dict) -> list[str]:
    """
    Validate a document against a schema.

    Returns:
        List of error messages (empty if valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in validator.iter_errors(document):
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        errors.append(f"{path}: {error.message}")
    return errors


def main():
    parser = argparse.ArgumentParser(
        description="Validate a ChildFirst backup file"
    )
    parser.add_argument(
        "json_file",
        type=Path,
        help="Path to backup JSON file to validate",
    )

    args = parser.parse_args()

    try:
        schema = load_schema()
    except FileNotFoundError:
        sys.exit(f"Error: Schema file not found: {SCHEMA_PATH}")

    try:
        with open(args.json_file, "r", encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError:
        sys.exit(f"Error: File not found: {args.json_file}")
    except json.JSONDecodeError as e:
        sys.exit(f"Error: Invalid JSON: {e}")

    errors = validate_document(document, schema)

    if errors:
        print(f"INVALID: {len(errors)} error(s) found:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)
    else:
        count = len(document["incidents"])
        print(f"VALID: Backup conforms to schema ({count} incidents).")
        sys.exit(0)


if __name__ == "__main__":
    main()
