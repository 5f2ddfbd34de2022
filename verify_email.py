#!/usr/bin/env python3
"""
verify_email.py — verify email addresses with the BounceBan API

Features
- Verify one or many addresses (arguments, a JSON array file or a JSON lines file)
- Sequential processing (default) or concurrent batch processing
- Regular or DeepVerify mode, optional catch-all skip and webhook URL
- Retries BounceBan's 408 "still verifying" answer up to 15 times
- Credential check against the account endpoint

Environment (.env)
  BOUNCEBAN_API_KEY=...
  BOUNCEBAN_MAX_RETRIES=15      (optional)
  BOUNCEBAN_TIMEOUT=90          (optional, seconds)
  BOUNCEBAN_RETRY_DELAY=0       (optional, seconds between 408 retries)
  BOUNCEBAN_MAX_WORKERS=50      (optional, batch mode cap)

Usage
  python verify_email.py EMAIL [EMAIL ...] [--mode deepverify] [--batch]
  python verify_email.py --input contacts.jsonl --email-field work_email --json
  python verify_email.py --test-credentials
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from bounceban.client import check_credentials
from bounceban.config import load_settings
from bounceban.errors import BounceBanError
from bounceban.models import (
    CATCHALL_FLAGS,
    MODE_BATCH,
    MODE_SEQUENTIAL,
    VERIFY_MODES,
    BounceBanCredentials,
    NodeParameters,
    OutputItem,
    VerifyOptions,
)
from bounceban.node import execute

# --------------------------
# Input
# --------------------------


def load_records(path: Path) -> List[Dict[str, Any]]:
    """Read records from a JSON array or a JSON lines file."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    try:
        if text.startswith("["):
            data = json.loads(text)
        else:
            data = [json.loads(line) for line in text.splitlines() if line.strip()]
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--input") from e
    records: List[Dict[str, Any]] = []
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise click.BadParameter(f"record {i} is not a JSON object", param_hint="--input")
        records.append(row)
    return records


# --------------------------
# Output
# --------------------------


def summarize(item: OutputItem) -> Tuple[str, str]:
    """Return (icon, one-line detail) for an output item."""
    result = item.result
    if item.failed:
        return "❌", f"error — {result['error']}"
    if not isinstance(result, dict):
        return "⚠️", f"unexpected response: {result!r}"
    verdict = str(result.get("result") or "unknown")
    score = result.get("score")
    icon = {"deliverable": "✅", "undeliverable": "🚫", "risky": "⚠️"}.get(verdict, "❔")
    detail = verdict
    if score is not None:
        detail += f", score={score}"
    if result.get("is_accept_all"):
        detail += ", accept-all"
    if result.get("is_disposable"):
        detail += ", disposable"
    return icon, detail


def print_results(items: List[OutputItem], email_field: str) -> None:
    print("\n================ BounceBan =================")
    for item in items:
        email = str(item.json.get(email_field) or "-")
        icon, detail = summarize(item)
        print(f"{icon} [{item.paired_item}] {email:32s} {detail}")
    failed = sum(1 for item in items if item.failed)
    print("--------------------------------------------")
    print(f"📊 Verified:        {len(items) - failed}/{len(items)}")
    credits = [
        item.result.get("credits_remaining")
        for item in items
        if isinstance(item.result, dict) and item.result.get("credits_remaining") is not None
    ]
    if credits:
        print(f"💳 Credits left:    {credits[-1]}")
    print("============================================\n")


# --------------------------
# CLI
# --------------------------


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("emails", nargs=-1)
@click.option(
    "--input",
    "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON array or JSON lines file of records to verify.",
)
@click.option(
    "--email-field",
    default="email",
    show_default=True,
    help="Record key holding the email address.",
)
@click.option("--mode", type=click.Choice(VERIFY_MODES), help="Verification mode.")
@click.option(
    "--disable-catchall-verify",
    type=click.Choice(CATCHALL_FLAGS),
    help="1 runs basic SMTP verification only; catch-all emails come back unknown.",
)
@click.option("--webhook-url", help="URL that receives the result as an HTTP POST.")
@click.option(
    "--batch/--sequential",
    default=False,
    help="Verify all records concurrently instead of one by one.",
)
@click.option(
    "--continue-on-fail",
    is_flag=True,
    help="Sequential mode: record a failing item's error and keep going.",
)
@click.option("--max-retries", type=click.IntRange(min=0), help="Retries on HTTP 408.")
@click.option(
    "--retry-delay",
    type=click.FloatRange(min=0),
    help="Seconds to wait between HTTP 408 retries.",
)
@click.option("--max-workers", type=click.IntRange(min=1), help="Cap on concurrent requests.")
@click.option("--json", "as_json", is_flag=True, help="Print output items as JSON.")
@click.option("--test-credentials", is_flag=True, help="Only check the API key.")
@click.option("-v", "--verbose", count=True, help="-v for info logs, -vv for debug.")
def main(
    emails: Tuple[str, ...],
    input_path: Optional[Path],
    email_field: str,
    mode: Optional[str],
    disable_catchall_verify: Optional[str],
    webhook_url: Optional[str],
    batch: bool,
    continue_on_fail: bool,
    max_retries: Optional[int],
    retry_delay: Optional[float],
    max_workers: Optional[int],
    as_json: bool,
    test_credentials: bool,
    verbose: int,
) -> None:
    logging.basicConfig(
        level={0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # verify_single skips certificate checks; keep that quiet on the console
    urllib3.disable_warnings(InsecureRequestWarning)
    try:
        settings = load_settings()
    except ValueError as e:
        raise click.UsageError(str(e))
    if max_retries is not None:
        settings.max_retries = max_retries
    if retry_delay is not None:
        settings.retry_delay = retry_delay
    if max_workers is not None:
        settings.max_workers = max_workers

    if not settings.api_key:
        print("\n❌ Error: BOUNCEBAN_API_KEY is not set")
        sys.exit(1)
    credentials = BounceBanCredentials(settings.api_key)

    if test_credentials:
        try:
            account = check_credentials(credentials, settings)
        except BounceBanError as e:
            print(f"\n❌ Credential check failed: {e}")
            sys.exit(1)
        print("\n✅ Credentials OK")
        print(json.dumps(account, indent=2))
        return

    records: List[Dict[str, Any]] = []
    if input_path is not None:
        records.extend(load_records(input_path))
    records.extend({email_field: email} for email in emails)
    if not records:
        print("\n❌ Error: give EMAIL arguments or --input")
        sys.exit(1)

    params = NodeParameters(
        email=lambda record, _: record.get(email_field),
        options=VerifyOptions(
            mode=mode,
            disable_catchall_verify=disable_catchall_verify,
            url=webhook_url,
        ),
        processing_mode=MODE_BATCH if batch else MODE_SEQUENTIAL,
        continue_on_fail=continue_on_fail,
    )

    try:
        items = execute(records, params, credentials, settings)
    except BounceBanError as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)

    if as_json:
        print(json.dumps([item.to_dict() for item in items], indent=2))
    else:
        print_results(items, email_field)


if __name__ == "__main__":
    main()
