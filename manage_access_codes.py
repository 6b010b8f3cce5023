#!/usr/bin/env python3
"""
Access code management script:
- list codes with their usage
- create new codes
- activate / deactivate codes
- list pending access requests
- purge expired codes and old processed requests

Works directly on the document store, so it can be used while the web app
is stopped.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config_manager import ConfigManager
from truthlens.access_codes.repository import AccessCodeRepository
from truthlens.access_codes.validator import AccessCodeValidator
from truthlens.access_requests.services import AccessRequestService
from truthlens.store import DocumentStore
from truthlens.user_management.services import UserService
from truthlens.utils import parse_datetime

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

CLI_ADMIN_ID = "cli"


def default_store_dir(config_file: str) -> Path:
    """Store directory as configured for the web app."""
    paths = ConfigManager(config_file).get_paths_config()
    data_dir = Path(paths.data_dir)
    if not data_dir.is_absolute():
        data_dir = Path(__file__).parent / data_dir
    store_dir = Path(paths.store_dir)
    return store_dir if store_dir.is_absolute() else data_dir / store_dir


def print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Access code management script")
    parser.add_argument("--config", default="web_app_config.json",
                        help="Config file used to locate the document store")
    parser.add_argument("--store-dir", type=Path,
                        help="Document store directory (overrides the config)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List all access codes")

    create_parser = subparsers.add_parser("create", help="Create an access code")
    create_parser.add_argument("code", help="The code users will enter")
    create_parser.add_argument("--tier", required=True, choices=["plus", "pro", "ultimate"])
    create_parser.add_argument("--type", default="general", choices=["general", "student"])
    create_parser.add_argument("--usage-limit", type=int, default=0,
                               help="Maximum redemptions (0 for unlimited)")
    create_parser.add_argument("--expires-at", help="ISO 8601 expiry, e.g. 2026-12-31T23:59:59")

    for name in ("activate", "deactivate"):
        toggle_parser = subparsers.add_parser(name, help=f"{name.capitalize()} an access code")
        toggle_parser.add_argument("code_id")

    subparsers.add_parser("pending", help="List pending access requests")

    purge_parser = subparsers.add_parser("purge", help="Delete expired codes and old processed requests")
    purge_parser.add_argument("--days", type=int,
                              help="Retention in days (defaults to access.retention_days)")

    args = parser.parse_args(argv)

    store = DocumentStore(args.store_dir or default_store_dir(args.config))
    repository = AccessCodeRepository(store)
    service = AccessRequestService(store, repository, AccessCodeValidator(repository), UserService(store, []))

    if args.command == "list":
        print_json([c.to_admin_dict() for c in repository.list_all()])
        return 0

    if args.command == "create":
        try:
            access_code = repository.create(
                code=args.code,
                tier=args.tier,
                code_type=args.type,
                usage_limit=args.usage_limit,
                expires_at=parse_datetime(args.expires_at),
                admin_id=CLI_ADMIN_ID,
            )
        except ValueError as e:
            logger.error(f"Could not create access code: {e}")
            return 1
        print_json(access_code.to_admin_dict())
        return 0

    if args.command in ("activate", "deactivate"):
        if repository.get(args.code_id) is None:
            logger.error(f"Access code not found: {args.code_id}")
            return 1
        access_code = repository.set_active(args.code_id, args.command == "activate")
        print_json(access_code.to_admin_dict())
        return 0

    if args.command == "pending":
        print_json([r.to_json() for r in service.list_pending()])
        return 0

    if args.command == "purge":
        days = args.days if args.days is not None else ConfigManager(args.config).get_access_config().retention_days
        print_json({
            "retention_days": days,
            "access_codes": repository.purge_expired(days),
            "access_requests": service.purge_processed(days),
        })
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
