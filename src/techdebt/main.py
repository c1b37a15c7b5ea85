"""Application entry point for the technical debt analyzer."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, Sequence

from .analytics import AnalyticsService
from .api_client import SupportApiClient
from .cli import parse_args
from .config import Config, load_config
from .debt import TechnicalDebtService
from .errors import ApiError, AuthenticationError, ConfigurationError, DataValidationError
from .models import AreaFailure
from .report import (
    render_debt_report,
    render_ticket_breakdown,
    render_trend_analysis,
    render_usage_correlation,
)
from .store import InMemoryStore

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_AUTHENTICATION_ERROR = 3
EXIT_API_ERROR = 4
EXIT_DATA_VALIDATION_ERROR = 5


def run_command(command: str, config: Config, store: InMemoryStore) -> str:
    """Run one analysis command against loaded records and return the report text."""
    organization = config.organization

    if command == "debt":
        service = TechnicalDebtService(provider=store, history=store)
        if config.product_area:
            results = [service.calculate_technical_debt(organization, config.product_area)]
            failures: List[AreaFailure] = []
        else:
            results, failures = service.calculate_organization_technical_debt_with_failures(
                organization
            )
        summary = service.summarize_organization(organization, results)
        return render_debt_report(summary, results, failures)

    analytics = AnalyticsService(provider=store, history=store)

    if command == "breakdown":
        return render_ticket_breakdown(organization, analytics.get_ticket_breakdown(organization))
    if command == "correlation":
        return render_usage_correlation(organization, analytics.get_usage_correlation(organization))
    if command == "trends":
        return render_trend_analysis(
            organization, analytics.get_trend_analysis(organization, months=config.months)
        )

    raise ConfigurationError(f"Unknown command: {command!r}")


def orchestrate_analysis(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, load organization data, and print a report.

    Returns:
        Process exit code: 0 on success, 2 for configuration errors, 3 for
        authentication errors, 4 for API errors, 5 for invalid API payloads
        and 1 for anything unexpected.
    """
    try:
        args = parse_args(argv)
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        config = load_config(
            api_url=args.api_url,
            organization=args.org,
            product_area=args.product_area,
            months=args.months,
        )

        print(f"Loading support data for organization '{config.organization}'...")
        client = SupportApiClient(config=config)
        store = client.load_organization(config.organization)

        print(run_command(args.command, config, store))
        return EXIT_SUCCESS
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION_ERROR
    except ApiError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_API_ERROR
    except DataValidationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_DATA_VALIDATION_ERROR
    except Exception:
        logger.exception("Unexpected error during technical debt analysis")
        print("ERROR: Unexpected failure; see log output for details.", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    sys.exit(orchestrate_analysis())


if __name__ == "__main__":
    main()
