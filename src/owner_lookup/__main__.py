import argparse
import dataclasses
import json
import logging
from pathlib import Path

from .batch import enrich_csv
from .config import get_settings
from .db.init import init_db
from .errors import AddressValidationError
from .models import AddressQuery
from .resolver import build_resolver
from .storage import SQLiteListingStore


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Look up the owner of a listed property",
    )

    parser.add_argument(
        "--address",
        help="Property address, e.g. '123 Main St, Chicago, IL 60601'",
        required=False,
    )
    parser.add_argument(
        "--listing-link",
        default=None,
        help="Listing URL used for an exact store match",
    )
    parser.add_argument(
        "--source",
        default=None,
        help="Listing platform tag (fsbo, redfin, trulia, zillow-fsbo, zillow-frbo, hotpads, addresses)",
    )
    parser.add_argument(
        "--store",
        default=None,
        help="SQLite path of the listing store (defaults to OWNER_LOOKUP_DB)",
    )
    parser.add_argument(
        "--fallback-csv",
        default=None,
        help="CSV side file with address/mailing_address columns",
    )
    parser.add_argument(
        "--input-csv",
        default=None,
        help="CSV file with an 'address' column (optional city/state/zip) for batch runs",
    )
    parser.add_argument(
        "--output-csv",
        default=None,
        help="Where to write the enriched CSV (defaults to rewriting --input-csv)",
    )
    parser.add_argument(
        "--no-write-back",
        dest="write_back",
        action="store_false",
        help="Do not persist newly found owner fields",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the listing tables if missing and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON log line per lookup step",
    )

    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    settings = get_settings()
    overrides = {}
    if args.store:
        overrides["db_path"] = args.store
    if args.fallback_csv:
        overrides["fallback_csv_path"] = args.fallback_csv
    if not args.write_back:
        overrides["write_back"] = False
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    if args.init_db:
        path = init_db(settings.db_path)
        print(json.dumps({"initialized": path}))
        return

    if args.input_csv and not Path(args.input_csv).exists():
        parser.error("--input-csv file does not exist")
    if not args.address and not args.input_csv:
        parser.error("--address or --input-csv is required")

    store = SQLiteListingStore(
        settings.db_path,
        page_size=settings.page_size,
        max_candidates=settings.max_candidates,
    )
    try:
        resolver = build_resolver(store, settings)
        if args.input_csv:
            summary = enrich_csv(
                resolver,
                args.input_csv,
                args.output_csv,
                source=args.source,
                write_back=settings.write_back,
            )
            print(json.dumps({"output": args.output_csv or args.input_csv, **summary.as_dict()}))
            return
        try:
            res = resolver.resolve(
                AddressQuery(
                    address=args.address,
                    listing_link=args.listing_link,
                    source=args.source,
                ),
                write_back=settings.write_back,
            )
        except AddressValidationError as exc:
            print(json.dumps({"error": exc.message, "details": exc.details}))
            raise SystemExit(2)
    finally:
        store.close()

    if args.log_json:
        for step in res.steps:
            print(json.dumps(step))
    payload = res.result.to_payload()
    payload["status"] = res.status
    if res.provider_error is not None:
        payload["error"] = res.provider_error.message
    if res.write_back_applied is not None:
        payload["writeBack"] = res.write_back_applied
    print(json.dumps(payload))


def _safe_main():
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)


if __name__ == "__main__":
    _safe_main()
