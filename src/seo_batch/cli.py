"""Command-line interface for the SEO batch extractor."""

import json
import sys

from seo_batch.amp_validator import AmpValidator
from seo_batch.browser_config import PRESETS, preset_overrides
from seo_batch.config import RunConfig, settings
from seo_batch.errors import ReportIOError
from seo_batch.logging_config import get_logger, setup_logging
from seo_batch.pipeline import SeoBatchRunner

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_run_config(args) -> RunConfig:
    """Build the run configuration from a file or the environment, then the preset, then flags."""
    config = RunConfig.from_file(args.config) if args.config else RunConfig.from_env()
    if args.preset:
        config = config.with_overrides(**preset_overrides(args.preset))
    return config.with_overrides(
        url_input_file=args.urls_file,
        read_url_file_enabled=False if args.no_url_file else None,
        base_url=args.base_url,
        static_page_keywords=args.keywords,
        output_file=args.output,
        sheet_name=args.sheet,
        number_of_threads=args.workers,
        max_retries=args.max_retries,
        retry_delay_seconds=args.retry_delay,
        validate_amp=True if args.validate_amp else None,
        vendor_table_file=args.vendors,
        browser_type=args.browser,
        headless=args.headless,
        navigation_timeout_ms=args.timeout_ms,
        wait_until=args.wait_until,
        post_load_wait_ms=args.post_load_wait_ms,
    )


def print_summary(summary):
    """Print a batch summary in a formatted way."""
    print(f"\n{'=' * 60}")
    print("SEO Batch Extraction")
    print(f"{'=' * 60}")
    print(f"  • Targets:   {summary.total}")
    print(f"  • Succeeded: {summary.succeeded}")
    print(f"  • Failed:    {summary.failed}")
    print(f"  • Report:    {summary.output_path}")

    failed = [row for row in summary.rows if not row.succeeded]
    if failed:
        print("\n⚠️  Failed URLs:")
        for row in failed:
            print(f"  • {row.target}: {row.error}")
    print(f"\n{'=' * 60}\n")


def run_command(args):
    """Run a batch extraction."""
    try:
        runner = SeoBatchRunner(build_run_config(args))
    except (ValueError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(2)

    try:
        summary = runner.run()
    except ReportIOError as e:
        logger.error(f"Report could not be written: {e}")
        print(f"Error: {e}")
        sys.exit(1)

    print_summary(summary)


def validate_amp_command(args):
    """Validate one or more AMP URLs."""
    validator = AmpValidator()
    results = [validator.validate(url) for url in args.urls]

    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2))
    else:
        for result in results:
            print(f"{result.url}: {result.summary}")
            for error in result.errors:
                print(f"    {error}")

    if not all(result.passed for result in results):
        sys.exit(1)


def main():
    """Main CLI entry point."""
    import argparse

    default_level = settings.LOG_LEVEL.upper()
    if default_level not in LOG_LEVELS:
        default_level = "INFO"

    parser = argparse.ArgumentParser(
        description="SEO Batch - Extract SEO and tracking metadata from rendered pages"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=default_level,
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command parser
    run_parser = subparsers.add_parser(
        "run", help="Process a batch of URLs and write the report."
    )
    run_parser.add_argument(
        "--config",
        "-c",
        help="JSON configuration file (default: SEO_BATCH_* environment variables)",
    )
    run_parser.add_argument("--urls-file", "-u", help="Newline-delimited URL file")
    run_parser.add_argument(
        "--no-url-file",
        action="store_true",
        help="Do not read the URL file",
    )
    run_parser.add_argument("--base-url", help="Discover same-site links from this page")
    run_parser.add_argument(
        "--keywords",
        help="Comma-separated keywords; discovered links containing any are skipped",
    )
    run_parser.add_argument("--output", "-o", help="Report file (.xlsx or .csv)")
    run_parser.add_argument("--sheet", help="Worksheet name for .xlsx reports")
    run_parser.add_argument("--workers", "-w", type=int, help="Number of worker threads")
    run_parser.add_argument("--max-retries", type=int, help="Attempts per URL")
    run_parser.add_argument("--retry-delay", type=float, help="Seconds between attempts")
    run_parser.add_argument(
        "--validate-amp",
        action="store_true",
        help="Check AMP URLs with the AMP validator service",
    )
    run_parser.add_argument("--vendors", help="JSON file with tracking vendor signatures")
    run_parser.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine",
    )
    headless_group = run_parser.add_mutually_exclusive_group()
    headless_group.add_argument(
        "--headless", dest="headless", action="store_true", default=None,
        help="Run the browser without a window",
    )
    headless_group.add_argument(
        "--headed", dest="headless", action="store_false",
        help="Run the browser with a visible window",
    )
    run_parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        help="Browser timing preset, applied before the other browser flags",
    )
    run_parser.add_argument("--timeout-ms", type=int, help="Navigation timeout in milliseconds")
    run_parser.add_argument(
        "--wait-until",
        choices=["load", "domcontentloaded", "networkidle", "commit"],
        help="When navigation counts as finished",
    )
    run_parser.add_argument(
        "--post-load-wait-ms",
        type=int,
        help="Fixed wait after navigation in milliseconds",
    )
    run_parser.set_defaults(func=run_command)

    # Validate-amp command parser
    amp_parser = subparsers.add_parser(
        "validate-amp", help="Validate AMP URLs with the AMP validator service."
    )
    amp_parser.add_argument("urls", nargs="+", help="AMP URLs to validate")
    amp_parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    amp_parser.set_defaults(func=validate_amp_command)

    args = parser.parse_args()

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
