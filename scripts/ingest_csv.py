"""
Run a dataset upload from a local CSV file.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from app.config import get_logging_settings
from app.domain.ingestion import DatasetType, UploadMode, UploadModeKind
from app.parsing.csv_parser import TabularParseError, decode_upload
from app.repositories import build_ingestion_repositories
from app.services.ingestion_errors import IngestionError
from app.services.upload_ingestion_service import get_upload_ingestion_service, request_from_csv_text
from db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Upload a CSV file into one financial dataset.")
    parser.add_argument("path", type=Path, help="CSV file to upload.")
    parser.add_argument(
        "--dataset",
        required=True,
        choices=[dataset.value for dataset in DatasetType],
        help="Target dataset.",
    )
    parser.add_argument(
        "--mode",
        default=UploadModeKind.APPEND.value,
        choices=[kind.value for kind in UploadModeKind],
        help="Replacement strategy (default: append).",
    )
    parser.add_argument("--replace-year", type=int, default=None, help="Fiscal year for replace_year mode.")
    parser.add_argument(
        "--confirm-replace-table",
        action="store_true",
        help="Required with replace_table; deletes every existing row of the dataset.",
    )
    parser.add_argument("--actor", default=None, help="Identifier recorded on the audit entry.")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_logging_settings().level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    kind = UploadModeKind(args.mode)
    mode = UploadMode(kind, args.replace_year) if kind is UploadModeKind.REPLACE_YEAR else UploadMode(kind)
    try:
        request = request_from_csv_text(
            dataset_type=DatasetType(args.dataset),
            mode=mode,
            text=decode_upload(args.path.read_bytes()),
            confirm_replace_table=args.confirm_replace_table,
            filename=args.path.name,
        )
    except (OSError, TabularParseError) as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        return 1

    service = get_upload_ingestion_service()
    with SessionLocal() as db:
        try:
            outcome = service.ingest(
                request=request,
                repositories=build_ingestion_repositories(db),
                actor=args.actor,
            )
        except IngestionError as exc:
            print(json.dumps(exc.to_dict(issue_limit=service.settings.max_reported_issues), indent=2, default=str))
            return 1

    payload = {
        "ok": True,
        "datasetType": outcome.dataset_type.value,
        "mode": outcome.mode.value,
        "insertedCount": outcome.result.inserted_count,
        "affectedFiscalYears": sorted(outcome.result.affected_fiscal_years),
        "recomputedFiscalYears": list(outcome.recomputed_fiscal_years),
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
