from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

from chart_sync.core.logging import configure_logging
from chart_sync.core.settings import settings, validate_settings
from chart_sync.db.session import SessionLocal
from chart_sync.services.auditor import run_consistency_audit
from chart_sync.services.corrections import DatabaseCorrectionSink
from chart_sync.services.store import SqlAlchemyChartStore


def _parse_patient_ids(raw: str | None) -> list[int] | None:
    if raw is None:
        return None
    parsed: list[int] = []
    seen: set[int] = set()
    for token in raw.split(","):
        value = token.strip()
        if not value:
            raise RuntimeError("Invalid --patient-ids value: empty token.")
        try:
            patient_id = int(value)
        except ValueError as exc:
            raise RuntimeError(f"Invalid patient id in --patient-ids: {value}") from exc
        if patient_id in seen:
            continue
        seen.add(patient_id)
        parsed.append(patient_id)
    parsed.sort()
    return parsed


def _print_summary(payload: dict[str, object]) -> None:
    mode = "dry run" if payload["dry_run"] else "applied"
    print(
        f"Tooth audit ({mode}): scanned {payload['records_scanned']} records "
        f"for {payload['patients_scanned']} patients; "
        f"{payload['corrections_count']} corrections, {len(payload['failures'])} failures.",
        file=sys.stderr,
    )
    if payload["log_failures"]:
        print(
            f"  {len(payload['log_failures'])} corrections applied but missing from the correction log",
            file=sys.stderr,
        )
    for transition, count in sorted(payload["transitions"].items()):
        print(f"  {transition}: {count}", file=sys.stderr)
    if payload["cancelled"]:
        print(
            f"  cancelled after {payload['shards_completed']}/{payload['shards_total']} shards",
            file=sys.stderr,
        )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Recompute tooth status/colour from clinical text and correct drift."
    )
    parser.add_argument(
        "--patient-ids",
        default=None,
        help="Comma-separated patient ids to audit (default: every patient with tooth records).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.audit_batch_size,
        help=f"Patients per shard (default: {settings.audit_batch_size}).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report drift without appending corrections.",
    )
    parser.add_argument(
        "--output-json",
        default="-",
        help="Write JSON to PATH (default: stdout).",
    )
    args = parser.parse_args(argv)

    configure_logging(settings)
    validate_settings(settings)
    patient_ids = _parse_patient_ids(args.patient_ids)

    cancel_event = threading.Event()
    previous_handlers = {
        signum: signal.signal(signum, lambda _signum, _frame: cancel_event.set())
        for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        report = run_consistency_audit(
            SqlAlchemyChartStore(SessionLocal),
            DatabaseCorrectionSink(SessionLocal),
            patient_ids=patient_ids,
            batch_size=args.batch_size,
            dry_run=args.dry_run,
            cancel_event=cancel_event,
        )
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    payload = report.finalize()
    payload["generated_at"] = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    payload["patient_ids"] = patient_ids

    _print_summary(payload)

    output_json = args.output_json or "-"
    if output_json == "-":
        json.dump(payload, sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
    else:
        output_path = Path(output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
