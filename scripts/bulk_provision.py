"""Bulk-provision Keycloak users from a CSV of user codes.

For every ``codUser`` row: create the user, look up its id and the target
group id, add the user to the group and set the initial password.

Examples:
    export KEYCLOAK_URL=http://localhost:8080 KEYCLOAK_REALM=demo KEYCLOAK_TOKEN=...
    python scripts/bulk_provision.py --csv users.csv
    python scripts/bulk_provision.py --csv users.csv --workers 4 --log-level DEBUG
"""
from __future__ import annotations
import argparse
import dataclasses
import logging
import os
import sys
import time
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.config.settings import load_settings
from app.core.batch import provision_batch
from app.core.keycloak import create_client_with_token
from app.core.keycloak.exceptions import CatalogError
from app.core.provisioning_service import ProvisioningOrchestrator
from app.core.row_source import RowSourceError, read_user_codes
from scripts import audit


def _configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.hasHandlers():
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)sZ - %(levelname)s - %(name)s - %(message)s")
        formatter.converter = time.gmtime  # UTC timestamps
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(description="Bulk Keycloak user provisioning from CSV")
    parser.add_argument("--csv", default="users.csv", help="Row source file (default: users.csv)")
    parser.add_argument("--kc-url", default=None, help="Keycloak base URL (default: $KEYCLOAK_URL)")
    parser.add_argument("--realm", default=None, help="Target realm (default: $KEYCLOAK_REALM)")
    parser.add_argument("--column", default=None, help="Header of the user code column (default: codUser)")
    parser.add_argument("--delimiter", default=",", help="Single-character field delimiter (default: ,)")
    parser.add_argument("--workers", type=int, default=None, help="Users provisioned concurrently (default: 1)")
    parser.add_argument("--max-attempts", type=int, default=None,
                        help="Maximum addUser attempts per user, compensation included (default: 3)")
    parser.add_argument("--operator", default=os.environ.get("USER", "automation"),
                        help="Operator identifier for audit logs")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be >= 1")
    if args.max_attempts is not None and args.max_attempts < 1:
        parser.error("--max-attempts must be >= 1")
    if len(args.delimiter) != 1:
        parser.error("--delimiter must be a single character")

    try:
        config = load_settings(keycloak_url=args.kc_url, realm=args.realm)
    except RuntimeError as e:
        print(f"[bulk] Configuration error: {e}", file=sys.stderr)
        return 1

    overrides = {
        "user_code_column": args.column,
        "workers": args.workers,
        "max_attempts": args.max_attempts,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    try:
        user_codes = read_user_codes(args.csv, column=config.user_code_column, delimiter=args.delimiter)
    except RowSourceError as e:
        print(f"[bulk] Error: {e}", file=sys.stderr)
        return 1

    client = create_client_with_token(config.admin_base_url, config.token, timeout=config.request_timeout)
    orchestrator = ProvisioningOrchestrator(client, config)

    try:
        summary = provision_batch(
            user_codes,
            orchestrator,
            workers=config.workers,
            on_result=lambda result: audit.record_result(result, operator=args.operator, realm=config.realm),
        )
    except CatalogError as e:
        print(f"[bulk] Catalog error: {e}", file=sys.stderr)
        return 1

    print(f"CSV file successfully processed: {summary.succeeded}/{summary.total} users provisioned")
    if summary.failed:
        print(f"Failed: {', '.join(summary.failed_codes)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
