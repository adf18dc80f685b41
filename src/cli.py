"""
CLI entry point for the Student Tracker setup service.

Commands:
- serve: Start the API server
- setup: Provision both stores, seed sample data and record completion
- seed: Load one kind of sample data (or all of them)
- test-connections: Check the configured stores and AI providers
"""
import argparse
import logging
import sys

from src.config import get_settings


def _configure_logging(verbose: bool = False):
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _require_database():
    """Database config from settings, or exit when NEON_DATABASE_URL is unset."""
    from src.models.setup_config import database_config_from_settings

    config = database_config_from_settings(get_settings())
    if config is None:
        print("Error: NEON_DATABASE_URL is not set. Add it to your .env file.")
        sys.exit(1)
    return config


def serve(args):
    """Start the API server."""
    import uvicorn

    print(f"Starting Student Tracker setup API on http://{args.host}:{args.port}")
    print(f"API docs available at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "src.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def setup(args):
    """Run the full setup workflow."""
    from src.services.setup_orchestrator import SetupOrchestrator

    config = _require_database()
    orchestrator = SetupOrchestrator(
        config,
        get_settings(),
        include_sample_data=not args.skip_sample_data,
    )
    report = orchestrator.run()

    print("\n=== Setup ===")
    for step in report.steps:
        mark = "✓" if step.success else "✗"
        print(f"[{mark}] {step.name}: {step.message}")
        if args.verbose and step.details:
            for key, value in step.details.items():
                print(f"      {key}: {value}")

    if not report.success:
        failed = report.failed_step
        if failed and failed.details and failed.details.get("error"):
            print(f"\nError: {failed.details['error']}")
        sys.exit(1)

    print("\nSetup complete.")


SEED_KINDS = {
    "students": ("load_students", "sample students"),
    "payments": ("load_payments", "sample payment records"),
    "tests": ("load_tests", "sample test scores"),
    "notes": ("load_notes", "sample conversation notes"),
}


def seed(args):
    """Load sample data."""
    import random

    from src.services.errors import SetupError
    from src.services.sample_data import SampleDataLoader

    config = _require_database()
    rng = random.Random(args.seed) if args.seed is not None else None
    loader = SampleDataLoader(config.neon.connection_string, rng=rng)

    kinds = list(SEED_KINDS) if args.kind == "all" else [args.kind]
    for kind in kinds:
        method, label = SEED_KINDS[kind]
        try:
            count = getattr(loader, method)()
        except SetupError as e:
            print(f"Error: {e.message}")
            if e.error:
                print(f"  {e.error}")
            sys.exit(1)
        print(f"Successfully loaded {count} {label}")


def test_connections(args):
    """Check the configured stores and providers."""
    from src.models.setup_config import api_config_from_settings
    from src.services.connection_tester import ProviderTester, check_databases

    settings = get_settings()
    ok = True

    config = _require_database()
    databases = check_databases(config)
    apis = ProviderTester().check_all(api_config_from_settings(settings))

    for title, summary in (("Databases", databases), ("AI providers", apis)):
        print(f"\n=== {title} ===")
        for name, result in summary["results"].items():
            mark = "✓" if result["success"] else "✗"
            print(f"[{mark}] {name}: {result['message']}")
        ok = ok and summary["success"]

    if not ok:
        sys.exit(1)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Student Tracker - database setup and sample data tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=serve)

    # Setup command
    setup_parser = subparsers.add_parser("setup", help="Provision stores and seed sample data")
    setup_parser.add_argument("--skip-sample-data", action="store_true",
                              help="Only create the schema and vector collection")
    setup_parser.set_defaults(func=setup)

    # Seed command
    seed_parser = subparsers.add_parser("seed", help="Load sample data")
    seed_parser.add_argument("kind", choices=[*SEED_KINDS, "all"], help="What to load")
    seed_parser.add_argument("--seed", type=int, help="Random seed for reproducible data")
    seed_parser.set_defaults(func=seed)

    # Test connections command
    test_parser = subparsers.add_parser("test-connections", help="Check stores and AI providers")
    test_parser.set_defaults(func=test_connections)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
