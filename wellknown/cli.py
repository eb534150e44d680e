"""Command-line interface for the well-known readiness controller."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .logging_config import setup_logging, get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATHS = [Path("wellknown.yaml"), Path("/etc/wellknown/config.yaml")]


def load_config(config_arg: Optional[str], required: bool = False):
    """Load the controller config from a YAML file, environment otherwise."""
    import yaml
    from .models import ControllerConfig

    config_path = None
    if config_arg:
        config_path = Path(config_arg)
        if not config_path.exists():
            print(f"Configuration file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
    elif not required:
        for path in DEFAULT_CONFIG_PATHS:
            if path.exists():
                config_path = path
                break

    if config_path is None:
        logger.debug("No configuration file found, using defaults")
        return ControllerConfig.from_env()

    try:
        logger.debug("Loading configuration file", config_path=str(config_path))
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
        controller_config = ControllerConfig.from_env(**config_data)
    except Exception as e:
        logger.error("Failed to load configuration", config_path=str(config_path), error=str(e))
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Configuration loaded", config_path=str(config_path), namespace=controller_config.namespace)
    return controller_config


def print_conditions(conditions: List, output: str) -> None:
    import yaml

    data = [c.to_api() for c in conditions]
    if output == "json":
        print(json.dumps(data, indent=2))
    elif output == "yaml":
        print(yaml.dump(data, default_flow_style=False, sort_keys=False))
    else:
        print(f"{'Type':<30} {'Status':<8} {'Reason':<20} Message")
        print("-" * 100)
        for condition in conditions:
            print(f"{condition.type:<30} {condition.status.value:<8} {condition.reason:<20} {condition.message}")


def sync_command(args: argparse.Namespace) -> None:
    """Run a single sync pass and print the published conditions."""
    from .client import ClusterClient
    from .controller import WellKnownReadyController

    setup_logging(args.verbose)
    controller_config = load_config(args.config)

    async def run_sync():
        cluster_client = ClusterClient(controller_config)
        try:
            return await WellKnownReadyController(cluster_client, controller_config).sync()
        finally:
            await cluster_client.disconnect()

    try:
        conditions = asyncio.run(run_sync())
    except Exception as e:
        logger.error("Sync failed", error=str(e))
        print(f"Sync failed: {e}", file=sys.stderr)
        sys.exit(1)

    print_conditions(conditions, args.output)


async def run_periodically(controller, interval: float, max_passes: Optional[int] = None) -> None:
    """Sync every ``interval`` seconds; a failed pass is logged and retried next tick."""
    passes = 0
    while max_passes is None or passes < max_passes:
        passes += 1
        try:
            await controller.sync()
        except Exception as e:
            logger.error("Sync pass failed", attempt=passes, error=str(e))
        if max_passes is None or passes < max_passes:
            await asyncio.sleep(interval)


def run_command(args: argparse.Namespace) -> None:
    """Run the controller until interrupted."""
    from .client import ClusterClient
    from .controller import WellKnownReadyController

    setup_logging(args.verbose)
    controller_config = load_config(args.config)
    interval = args.interval or controller_config.resync_interval

    async def run_loop():
        cluster_client = ClusterClient(controller_config)
        controller = WellKnownReadyController(cluster_client, controller_config)
        logger.info("Starting well-known readiness controller", interval=interval)
        try:
            await run_periodically(controller, interval)
        finally:
            await cluster_client.disconnect()

    try:
        asyncio.run(run_loop())
    except KeyboardInterrupt:
        logger.info("Controller stopped")


def metadata_command(args: argparse.Namespace) -> None:
    """Print the discovery document expected for a host."""
    from .verifier import oauth_metadata
    print(oauth_metadata(args.host))


def init_config_command(args: argparse.Namespace) -> None:
    """Generate a sample configuration file."""
    import yaml
    from .models import ControllerConfig

    sample_config = ControllerConfig().model_dump()
    config_yaml = yaml.dump(sample_config, default_flow_style=False, sort_keys=False)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(config_yaml)
        print(f"Sample configuration written to {output_path}")
    else:
        print("Sample configuration:\n")
        print(config_yaml)


def validate_config_command(args: argparse.Namespace) -> None:
    """Validate a configuration file."""
    import yaml
    from .models import ControllerConfig

    config_path = Path(args.config)

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
        controller_config = ControllerConfig(**config_data)
    except Exception as e:
        print(f"✗ Configuration file {config_path} is invalid: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Configuration file {config_path} is valid")
    print("\nConfiguration summary:")
    print(f"  Namespace: {controller_config.namespace}")
    print(f"  Route: {controller_config.target_name}")
    print(f"  API server: {controller_config.api_server_namespace}/{controller_config.api_server_service}"
          f" port {controller_config.api_server_port}")
    print(f"  Resync interval: {controller_config.resync_interval}s")


def version_command(args: argparse.Namespace) -> None:
    """Show version information."""
    from . import __version__
    print(f"wellknown {__version__}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Readiness controller for the OAuth well-known discovery endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sync_parser = subparsers.add_parser("sync", help="Run one sync pass and print the conditions")
    sync_parser.add_argument("--config", "-c", help="Configuration file path")
    sync_parser.add_argument(
        "--output", "-o",
        choices=["json", "yaml", "table"],
        default="table",
        help="Output format (default: table)"
    )
    sync_parser.set_defaults(func=sync_command)

    run_parser = subparsers.add_parser("run", help="Run the controller loop")
    run_parser.add_argument("--config", "-c", help="Configuration file path")
    run_parser.add_argument(
        "--interval",
        type=int,
        help="Seconds between sync passes (default: resync_interval from config)"
    )
    run_parser.set_defaults(func=run_command)

    metadata_parser = subparsers.add_parser("metadata", help="Print the expected discovery document")
    metadata_parser.add_argument("--host", required=True, help="Public host of the OAuth server")
    metadata_parser.set_defaults(func=metadata_command)

    init_parser = subparsers.add_parser("init-config", help="Generate a sample configuration file")
    init_parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    init_parser.set_defaults(func=init_config_command)

    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument("--config", "-c", required=True, help="Configuration file path")
    validate_parser.set_defaults(func=validate_config_command)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=version_command)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
