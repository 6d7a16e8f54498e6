"""CLI to run a provider search or inspect provider configuration."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from crm_integrations.errors import IntegrationError
from crm_integrations.manager import IntegrationManager, build_manager
from crm_integrations.models import Provider

logger = logging.getLogger(__name__)


def run_search(
    manager: IntegrationManager,
    *,
    provider: str,
    query: str,
    result_type: Optional[str],
    lat: Optional[float],
    lng: Optional[float],
    caller_id: Optional[str],
) -> dict:
    filters = {"type": result_type} if result_type else None
    location = {"lat": lat, "lng": lng} if lat is not None and lng is not None else None
    response = manager.search(provider, query, filters, location, caller_id=caller_id)
    return response.to_dict()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query external CRM and directory providers")
    subparsers = parser.add_subparsers(dest="command", required=True)
    providers = [p.value for p in Provider]

    search = subparsers.add_parser("search", help="Run a normalized search against one provider")
    search.add_argument("provider", choices=providers)
    search.add_argument("query", help="Free-text query, e.g. 'solar installers'")
    search.add_argument("--type", dest="result_type", help="Provider-specific result type (companies, deals, nearby)")
    search.add_argument("--lat", type=float, help="Latitude to bias place searches")
    search.add_argument("--lng", type=float, help="Longitude to bias place searches")
    search.add_argument("--caller", dest="caller_id", help="Caller id whose stored token may be used")

    status = subparsers.add_parser("status", help="Show credential status for a provider")
    status.add_argument("provider", choices=providers)
    status.add_argument("--caller", dest="caller_id", help="Caller id to check for a stored token")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    manager = build_manager()

    try:
        if args.command == "search":
            output = run_search(
                manager,
                provider=args.provider,
                query=args.query,
                result_type=args.result_type,
                lat=args.lat,
                lng=args.lng,
                caller_id=args.caller_id,
            )
        else:
            output = manager.status(args.provider, args.caller_id).to_dict()
    except IntegrationError as exc:
        logger.error("%s failed: %s", args.command, exc.message)
        print(json.dumps(exc.to_envelope(), indent=2))
        return 1
    finally:
        manager.shutdown()

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
