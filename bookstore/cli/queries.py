"""
CLI for running queries against the bookstore collection.

This module provides a command-line interface for:
- Loading MongoDB connection settings from YAML config
- Running single operations (find, page, update, delete, aggregate, index, explain)
- Running the reference queries of the catalog by name
- Running query specification files (find/aggregate/update/delete/index/explain)
- Printing results and optionally saving them as JSON files
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from bookstore.data.config import QueryAppConfig, load_query_config
from bookstore.queries.catalog import CATALOG, build_catalog_query
from bookstore.queries.mongo_executor import (
    MongoConnectionError,
    QueryExecutionError,
    run_mongo_queries,
)
from bookstore.queries.query_parser import (
    EXPLAIN_VERBOSITIES,
    MongoQuery,
    QueryFileNotFoundError,
    QuerySpecError,
    build_query,
    load_queries,
    parse_queries_arg,
)

logger = logging.getLogger(__name__)


def configure_logging(level_str: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging for CLI."""
    level = getattr(logging, level_str.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def save_results_to_files(
    results: Dict[str, List[Dict[str, Any]]], output_dir: Path
) -> None:
    """
    Save query results to individual JSON files.

    Args:
        results: Dictionary mapping query name to documents
        output_dir: Directory to save result files
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    for query_name, documents in results.items():
        output_file = output_dir / f"{query_name}.json"
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(documents, f, indent=2, ensure_ascii=False, default=str)
        logger.info(f"Saved {len(documents)} docs to {output_file}")


def print_summary(results: Dict[str, List[Dict[str, Any]]]) -> None:
    """Print execution summary to stdout."""
    print("\n" + "=" * 60)
    print("QUERY EXECUTION SUMMARY")
    print("=" * 60)
    for query_name, documents in results.items():
        print(f"  {query_name}: {len(documents)} documents")
    print("=" * 60 + "\n")


def print_documents(documents: List[Dict[str, Any]]) -> None:
    """Print result documents as indented JSON."""
    print(json.dumps(documents, indent=2, ensure_ascii=False, default=str))


def print_catalog() -> None:
    print("Available catalog queries:")
    for name, builder in CATALOG.items():
        doc = (builder.__doc__ or "").strip().splitlines()
        print(f"  {name:<24} {doc[0] if doc else ''}")


def _json_arg(raw: Optional[str], option: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise QuerySpecError(f"Invalid JSON for {option}: {e}")


def parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """
    Parse ``key=value`` catalog parameters.

    Values are decoded as JSON when possible (numbers, booleans) and kept as
    plain strings otherwise.

    Example:
        >>> parse_params(["year=1950", "genre=Fiction"])
        {'year': 1950, 'genre': 'Fiction'}
    """
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise QuerySpecError(f"Catalog parameter must look like key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        try:
            params[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            params[key.strip()] = value
    return params


def build_cli_queries(args: argparse.Namespace, config: QueryAppConfig) -> List[MongoQuery]:
    """Turn the parsed subcommand into the list of queries to execute."""
    if args.command == "run":
        logger.info(f"Parsing query file paths: {args.queries}")
        query_paths = parse_queries_arg(args.queries)
        logger.info(f"Found {len(query_paths)} query files")
        return load_queries(query_paths)

    collection = args.collection or config.mongo.collection

    if args.command == "catalog":
        params = {"collection": collection, **parse_params(args.param)}
        return [build_catalog_query(args.name, **params)]

    spec: Dict[str, Any] = {"name": args.command, "collection": collection}

    if args.command == "find":
        spec.update(
            type="find",
            filter=_json_arg(args.filter, "--filter"),
            projection=_json_arg(args.projection, "--projection"),
            sort=_json_arg(args.sort, "--sort"),
            skip=args.skip,
            limit=args.limit,
        )
    elif args.command == "page":
        spec.update(
            type="find",
            name=f"page_{args.page}",
            filter=_json_arg(args.filter, "--filter"),
            projection=_json_arg(args.projection, "--projection"),
            sort=_json_arg(args.sort, "--sort"),
            page=args.page,
            page_size=args.page_size or config.execution.page_size,
        )
    elif args.command == "update":
        spec.update(
            type="update_many" if args.many else "update_one",
            filter=_json_arg(args.filter, "--filter"),
            update=_json_arg(args.set, "--set"),
        )
    elif args.command == "delete":
        spec.update(
            type="delete_many" if args.many else "delete_one",
            filter=_json_arg(args.filter, "--filter"),
        )
    elif args.command == "aggregate":
        spec.update(type="aggregate", pipeline=_json_arg(args.pipeline, "--pipeline"))
    elif args.command == "index":
        spec.update(type="create_index", keys=_json_arg(args.keys, "--keys"), index_name=args.name)
    elif args.command == "explain":
        spec.update(
            type="explain", filter=_json_arg(args.filter, "--filter"), verbosity=args.verbosity
        )

    # Optional arguments left unset
    spec = {key: value for key, value in spec.items() if value is not None}
    return [build_query(spec, where="command line")]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to YAML configuration file (MongoDB connection)",
    )
    common.add_argument(
        "--collection",
        type=str,
        default=None,
        help="Collection to query (defaults to mongo.collection from the config)",
    )
    common.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory to save query results as JSON files (optional)",
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging level from config",
    )
    common.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate config and queries without executing against MongoDB",
    )

    parser = argparse.ArgumentParser(
        prog="bookstore-query",
        description="Run queries against the bookstore MongoDB collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Books of a genre
  bookstore-query find --config config.yaml --filter '{"genre": "Fiction"}'

  # Second page of 5 books, cheapest first
  bookstore-query page --config config.yaml --page 2 --sort '{"price": 1}'

  # Reference query from the catalog, with a parameter override
  bookstore-query catalog in_stock_after --config config.yaml --param year=2000

  # Execute query files and save the results as JSON
  bookstore-query run --config config.yaml --queries q1.json,q2.json --output-dir results/
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", parents=[common], help="Execute query specification files")
    run.add_argument(
        "--queries",
        type=str,
        required=True,
        help="Comma-separated list of query specification files (e.g., q1.json,q2.json)",
    )

    find = subparsers.add_parser("find", parents=[common], help="Filter, project and sort books")
    find.add_argument("--filter", type=str, default="{}", help="Query predicate as JSON")
    find.add_argument("--projection", type=str, default=None, help="Projection as JSON")
    find.add_argument("--sort", type=str, default=None, help='Sort as JSON, e.g. {"price": -1}')
    find.add_argument("--skip", type=int, default=0)
    find.add_argument("--limit", type=int, default=0)

    page = subparsers.add_parser("page", parents=[common], help="One page of books")
    page.add_argument("--page", type=int, required=True, help="Page number, starting at 1")
    page.add_argument(
        "--page-size", type=int, default=None, help="Books per page (defaults to execution.page_size)"
    )
    page.add_argument("--filter", type=str, default="{}", help="Query predicate as JSON")
    page.add_argument("--projection", type=str, default=None, help="Projection as JSON")
    page.add_argument("--sort", type=str, default=None, help="Sort as JSON")

    update = subparsers.add_parser("update", parents=[common], help="Assign fields of matching books")
    update.add_argument("--filter", type=str, required=True, help="Query predicate as JSON")
    update.add_argument(
        "--set", type=str, required=True, help='Field assignments as JSON, e.g. {"price": 12.99}'
    )
    update.add_argument("--many", action="store_true", help="Update every match, not only the first")

    delete = subparsers.add_parser("delete", parents=[common], help="Remove matching books")
    delete.add_argument("--filter", type=str, required=True, help="Query predicate as JSON")
    delete.add_argument("--many", action="store_true", help="Delete every match, not only the first")

    aggregate = subparsers.add_parser("aggregate", parents=[common], help="Run an aggregation pipeline")
    aggregate.add_argument("--pipeline", type=str, required=True, help="Pipeline stages as a JSON list")

    index = subparsers.add_parser("index", parents=[common], help="Create an index")
    index.add_argument(
        "--keys", type=str, required=True, help='Fields and directions, e.g. {"author": 1, "published_year": -1}'
    )
    index.add_argument("--name", type=str, default=None, help="Index name")

    explain = subparsers.add_parser("explain", parents=[common], help="Show the plan of a find")
    explain.add_argument("--filter", type=str, default="{}", help="Query predicate as JSON")
    explain.add_argument(
        "--verbosity", type=str, default="executionStats", choices=list(EXPLAIN_VERBOSITIES)
    )

    catalog = subparsers.add_parser("catalog", parents=[common], help="Run a reference query by name")
    catalog.add_argument("name", nargs="?", default=None, help="Catalog query name")
    catalog.add_argument(
        "--param",
        action="append",
        default=None,
        help="Override a default parameter, e.g. --param genre=Dystopian (repeatable)",
    )
    catalog.add_argument("--list", action="store_true", help="List the available catalog queries")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    if args.command == "catalog" and (args.list or args.name is None):
        print_catalog()
        return 0

    try:
        # 1. Load configuration
        config = load_query_config(args.config)

        # Configure logging (CLI flag overrides config)
        log_level = args.log_level or config.logging.level
        configure_logging(log_level, config.logging.log_file)
        logger.info(f"Loaded configuration from {args.config}")
        logger.info(f"Target database: {config.mongo.database}")

        # 2. Build and validate the queries
        queries = build_cli_queries(args, config)
        logger.info(f"Loaded {len(queries)} valid queries")

        for query in queries:
            logger.debug(f"  - {query.name} ({query.type} on {query.collection})")

        # 3. Dry run mode: exit early
        if args.dry_run:
            logger.info("DRY RUN MODE: Configuration and queries validated successfully")
            print("\n✓ Dry run completed successfully")
            print(f"  Config: {args.config}")
            print(f"  Queries: {len(queries)} validated")
            return 0

        # 4. Execute queries
        logger.info("Executing queries against MongoDB...")
        results = run_mongo_queries(
            queries=queries,
            mongo_uri=config.mongo.mongo_uri,
            database_name=config.mongo.database,
            timeout_s=config.execution.timeout_s,
        )

        # 5. Output results
        if args.command == "run":
            print_summary(results)
        else:
            for documents in results.values():
                print_documents(documents)

        if args.output_dir:
            output_dir = Path(args.output_dir).expanduser().resolve()
            logger.info(f"Saving JSON results to {output_dir}")
            save_results_to_files(results, output_dir)

        logger.info("✓ All queries processed successfully")
        return 0

    except (QueryFileNotFoundError, QuerySpecError) as e:
        logger.error(f"Query specification error: {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except MongoConnectionError as e:
        logger.error(f"MongoDB connection error: {e}")
        return 1
    except (QueryExecutionError, PyMongoError) as e:
        logger.error(f"Query execution error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
