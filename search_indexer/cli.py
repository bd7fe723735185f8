"""
Search Indexer CLI

Usage:
    search-indexer run --config configs/webtable.yaml
    search-indexer run -c configs/webtable.yaml --dry-run
    search-indexer run -c configs/webtable.yaml --direct-write --zk-host search01:8983/solr --collection web
    search-indexer run -c configs/webtable.yaml --output-dir /data/out --overwrite-output-dir --shards 4
"""

import argparse
import logging
import sys

from search_indexer import __version__
from search_indexer.errors import IndexerError
from search_indexer.framework import Executor, PipelineConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Suppress noisy logs from third-party libraries
for logger_name in [
    "urllib3",
    "requests",
    "ray",
    "fsspec",
]:
    logging.getLogger(logger_name).setLevel(logging.WARNING)


def _parse_key_values(pairs: list[str] | None) -> dict[str, str]:
    result = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got '{pair}'")
        result[key] = value
    return result


def apply_overrides(config: PipelineConfig, args) -> PipelineConfig:
    """Apply command-line overrides on top of the YAML configuration."""
    options = config.options

    for name in (
        "indexer_name",
        "table_name",
        "output_dir",
        "reducers",
        "shards",
        "fanout",
        "max_segments",
        "zk_host",
        "collection",
        "batch_size",
        "start_row",
        "end_row",
    ):
        value = getattr(args, name, None)
        if value is not None:
            setattr(options, name, value)

    if args.indexer_file is not None:
        options.indexer_file = args.indexer_file
    if args.dry_run:
        options.dry_run = True
    if args.direct_write:
        options.direct_write = True
    if args.overwrite_output_dir:
        options.overwrite_output_dir = True
    if args.verbose:
        options.verbose = True
    if args.no_ray:
        config.executor.use_ray = False

    options.mapper_params.update(_parse_key_values(args.mapper_param))
    options.connection_params.update(_parse_key_values(args.connection_param))
    return config


def cmd_run(args) -> int:
    """Run the indexing pipeline."""
    executor = None
    try:
        # Load configuration
        print(f"Loading configuration from {args.config}...")
        config = apply_overrides(PipelineConfig.from_yaml(args.config), args)
        if config.options.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        print("Initializing executor...")
        print(f"  - Mode: {config.options.execution_mode.value}")
        print(f"  - Batch size: {config.options.batch_size}")
        print(f"  - Ray: {'enabled' if config.executor.use_ray else 'disabled'}")
        print()

        executor = Executor(config)
        exit_code = executor.run()
        _print_counters(executor.counters.to_dict())
        return exit_code

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except FileNotFoundError as e:
        print(f"\nError: Configuration file not found: {e}")
        return 1
    except (IndexerError, argparse.ArgumentTypeError) as e:
        print(f"\nError: {e}")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        if executor is not None:
            executor.shutdown()


def _print_counters(counters: dict[str, dict[str, int]]):
    """Print job counters grouped by counter group."""
    print("\n" + "=" * 60)
    print("Job Counters:")
    print("=" * 60)

    if not counters:
        print("  No counters recorded")
        print("=" * 60)
        return

    for group, values in counters.items():
        print(f"\n{group}:")
        for name, value in values.items():
            print(f"  {name}: {value}")

    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="search-indexer",
        description="Search Indexer - distributed indexing of table rows into a search index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the indexing pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    search-indexer run --config configs/webtable.yaml
    search-indexer run -c configs/webtable.yaml --dry-run
    search-indexer run -c configs/webtable.yaml --direct-write --zk-host search01:8983/solr --collection web
    search-indexer run -c configs/webtable.yaml --output-dir /data/out --shards 4 --max-segments 1
        """,
    )
    run_parser.add_argument("-c", "--config", type=str, required=True, help="Path to pipeline configuration YAML file")
    run_parser.add_argument("--indexer-file", type=str, default=None, help="Indexer XML configuration file")
    run_parser.add_argument("--indexer-name", type=str, default=None, help="Name of the indexer")
    run_parser.add_argument("--table-name", type=str, default=None, help="Table to index")

    mode = run_parser.add_argument_group("execution mode")
    mode.add_argument("--dry-run", action="store_true", help="Print documents instead of indexing them")
    mode.add_argument(
        "--direct-write", action="store_true", help="Write documents straight to a live index cluster"
    )
    mode.add_argument("--no-ray", action="store_true", help="Run units in-process instead of on Ray")

    direct = run_parser.add_argument_group("direct write")
    direct.add_argument("--zk-host", type=str, default=None, help="Coordination endpoint of the index cluster")
    direct.add_argument("--collection", type=str, default=None, help="Target collection")
    direct.add_argument("--batch-size", type=int, default=None, help="Documents per batch sent to the cluster")

    output = run_parser.add_argument_group("file-based output")
    output.add_argument("--output-dir", type=str, default=None, help="Directory for the intermediate output")
    output.add_argument(
        "--overwrite-output-dir", action="store_true", help="Delete the output directory if it already exists"
    )
    output.add_argument("--reducers", type=int, default=None, help="Reducer count for the shard build stage")
    output.add_argument("--shards", type=int, default=None, help="Number of output shards")
    output.add_argument("--fanout", type=int, default=None, help="Maximum merge fan-out")
    output.add_argument("--max-segments", type=int, default=None, help="Maximum segments per shard")

    scan = run_parser.add_argument_group("scan")
    scan.add_argument("--start-row", type=str, default=None, help="First row key to index (inclusive)")
    scan.add_argument("--end-row", type=str, default=None, help="Row key to stop at (exclusive)")

    run_parser.add_argument(
        "--mapper-param", action="append", default=None, metavar="KEY=VALUE", help="Mapper parameter (repeatable)"
    )
    run_parser.add_argument(
        "--connection-param",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Index connection parameter (repeatable)",
    )
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    # Version
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        sys.exit(cmd_run(args))


if __name__ == "__main__":
    main()
