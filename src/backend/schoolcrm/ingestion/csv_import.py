"""Bulk lead import from a spreadsheet export.

    python -m schoolcrm.ingestion.csv_import leads.csv --source Instagram
"""

import argparse
import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import psycopg2

from schoolcrm.config import settings
from schoolcrm.db import leads as lead_store
from schoolcrm.db.postgres import db_error_message
from schoolcrm.ingestion.leads import resolve_source_id
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.phone import normalize_phone

logger = get_logger(__name__)

ENCODINGS = ("utf-8", "utf-8-sig", "latin-1")
IMPORT_FIELDS = ("full_name", "guardian_name", "phone", "email", "campaign", "notes")
GUARDIAN_HINTS = ("responsavel", "responsável", "pai", "mae", "mãe")
PHONE_HINTS = ("telefone", "phone", "celular", "whatsapp")


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def read_text(path: str) -> str:
    """Try common encodings before giving up."""
    for encoding in ENCODINGS:
        try:
            return Path(path).read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    raise UnicodeError(f"Could not decode {path} using {ENCODINGS}")


def parse_csv(text: str) -> Tuple[List[str], List[List[str]]]:
    """Split header and data rows; `,` and `;` are both accepted as delimiters."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError("CSV must have a header line and at least one data line.")
    delimiter = ";" if lines[0].count(";") > lines[0].count(",") else ","
    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter)
    rows = [[cell.strip() for cell in row] for row in reader]
    return rows[0], rows[1:]


def auto_map_headers(headers: Sequence[str]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for header in headers:
        lower = header.lower()
        if "nome" in lower and "model" in lower:
            mapping[header] = "full_name"
        elif any(hint in lower for hint in GUARDIAN_HINTS):
            mapping[header] = "guardian_name"
        elif any(hint in lower for hint in PHONE_HINTS):
            mapping[header] = "phone"
        elif "email" in lower or "e-mail" in lower:
            mapping[header] = "email"
        elif "campanha" in lower or "campaign" in lower:
            mapping[header] = "campaign"
        elif "nome" in lower:
            mapping[header] = "full_name"
        elif lower in IMPORT_FIELDS:
            mapping[header] = lower
    return mapping


def _row_values(row: Sequence[str], indices: Dict[str, int]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name, index in indices.items():
        value = row[index].strip() if index < len(row) else ""
        if value:
            values[name] = normalize_phone(value) if name == "phone" else value
    return values


def import_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    mapping: Dict[str, str],
    source_id: Optional[str] = None,
) -> ImportResult:
    indices = {
        mapping[header]: index
        for index, header in enumerate(headers)
        if mapping.get(header) in IMPORT_FIELDS
    }
    result = ImportResult()
    for offset, row in enumerate(rows):
        line_number = offset + 2
        values = _row_values(row, indices)
        if not values.get("full_name") or not values.get("phone"):
            result.failed += 1
            result.errors.append(f"Linha {line_number}: Nome ou telefone vazio")
            continue
        if lead_store.find_lead_id_by_phone(values["phone"]):
            result.failed += 1
            result.errors.append(f"Linha {line_number}: Telefone já cadastrado")
            continue
        values.update(
            status="lead",
            source_id=source_id,
            external_source=settings.csv_external_source,
        )
        try:
            lead_id = lead_store.insert_lead(values)
        except psycopg2.Error as exc:
            result.failed += 1
            result.errors.append(f"Linha {line_number}: {db_error_message(exc)}")
            continue
        if not lead_id:
            result.failed += 1
            result.errors.append(f"Linha {line_number}: Telefone já cadastrado")
            continue
        result.success += 1
    logger.info("CSV import finished: %d imported, %d failed", result.success, result.failed)
    return result


def import_file(path: str, source: Optional[str] = None) -> ImportResult:
    headers, rows = parse_csv(read_text(path))
    mapping = auto_map_headers(headers)
    logger.info("Importing %d rows from %s with mapping %s", len(rows), path, mapping)
    return import_rows(headers, rows, mapping, source_id=resolve_source_id(source))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Import leads from a CSV file.")
    parser.add_argument("path", help="CSV file exported from a spreadsheet")
    parser.add_argument("--source", help="Lead source name (defaults to the fallback source)")
    args = parser.parse_args(argv)

    result = import_file(args.path, args.source)
    print(f"Imported: {result.success}  Failed: {result.failed}")
    for error in result.errors[:10]:
        print(f"  {error}")
    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
