from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from owner_lookup.contacts.parse import is_sentinel
from owner_lookup.errors import AddressValidationError
from owner_lookup.models import AddressQuery


RESULT_COLUMNS = ("owner_name", "mailing_address", "emails", "phones")

logger = logging.getLogger("owner_lookup.batch")


@dataclass
class BatchSummary:
    rows: int = 0
    enriched: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "rows": self.rows,
            "enriched": self.enriched,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def neutralize_csv_field(value) -> str:
    text = "" if value is None else str(value)
    if text.startswith(("=", "+", "-", "@")):
        return "'" + text
    return text


def _filled(row: Dict[str, str], column: str) -> bool:
    return not is_sentinel(row.get(column))


def row_address(row: Dict[str, str]) -> str:
    """Join ``address`` with optional ``city``/``state``/``zip`` columns."""

    street = (row.get("address") or "").strip()
    if not street:
        return ""
    city = (row.get("city") or "").strip()
    tail = " ".join(p for p in ((row.get("state") or "").strip(), (row.get("zip") or "").strip()) if p)
    return ", ".join(p for p in (street, city, tail) if p)


def enrich_csv(
    resolver,
    input_path: str,
    output_path: Optional[str] = None,
    *,
    source: Optional[str] = None,
    write_back: bool = True,
) -> BatchSummary:
    """Resolve every row of a CSV of addresses and write the owner columns back.

    Rows whose four result columns are already filled are left alone. The
    output defaults to rewriting the input file.
    """

    src = Path(input_path)
    with src.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        headers: List[str] = list(reader.fieldnames or [])
        rows = list(reader)
    if "address" not in headers:
        raise ValueError(f"{src} has no 'address' column")
    for column in RESULT_COLUMNS:
        if column not in headers:
            headers.append(column)

    summary = BatchSummary(rows=len(rows))
    for i, row in enumerate(rows, start=1):
        for column in RESULT_COLUMNS:
            if not _filled(row, column):
                row[column] = ""
        if all(_filled(row, c) for c in RESULT_COLUMNS):
            summary.skipped += 1
            continue
        address = row_address(row)
        if not address:
            logger.info("row %s: no address, skipping", i)
            summary.skipped += 1
            continue
        try:
            res = resolver.resolve(AddressQuery(address=address, source=source), write_back=write_back)
        except AddressValidationError as exc:
            logger.warning("row %s: %s", i, exc.message)
            summary.failed += 1
            continue

        result = res.result
        row["owner_name"] = result.owner_name or row["owner_name"]
        row["mailing_address"] = result.mailing_address or row["mailing_address"]
        row["emails"] = ", ".join(result.emails) or row["emails"]
        row["phones"] = ", ".join(result.phones) or row["phones"]
        if result.has_any_data:
            summary.enriched += 1
        logger.info("row %s/%s: %s (%s)", i, len(rows), res.status, result.source_used.value)

    dest = Path(output_path) if output_path else src
    dest.parent.mkdir(parents=True, exist_ok=True)
    with dest.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            for column in RESULT_COLUMNS:
                row[column] = neutralize_csv_field(row.get(column))
            writer.writerow(row)
    return summary
