#!/usr/bin/env python3
"""
CLI for resolving a module catalog against a facts file.

Usage:
    python -m src.autoconfigure --facts facts.yaml
    python -m src.autoconfigure --facts facts.yaml --catalog modules.yaml
    python -m src.autoconfigure --facts facts.yaml --catalog modules.yaml --no-builtin --json

Exit codes:
    0 - report printed
    1 - catalog or facts could not be loaded, or modules cannot be ordered
    2 - a required group (or required module) activated nothing
"""

import argparse
import logging
import sys
from typing import List, Optional

from src.autoconfigure.builtin import builtin_conditions, builtin_modules
from src.autoconfigure.errors import (
    CatalogLoadError,
    CatalogValidationError,
    MissingRequiredActivationError,
    ModuleOrderingError,
    ModuleRegistrationError,
)
from src.autoconfigure.loader import load_catalog, load_facts
from src.autoconfigure.module_registry import ModuleRegistry
from src.autoconfigure.report import ActivationReport
from src.autoconfigure.resolver import ActivationResolver
from src.settings import settings

EXIT_OK = 0
EXIT_LOAD_ERROR = 1
EXIT_MISSING_REQUIRED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="python -m src.autoconfigure",
        description="Resolve which configuration modules activate for a set of facts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.autoconfigure --facts facts.yaml
  python -m src.autoconfigure --facts facts.yaml --catalog modules.yaml --json
        """
    )

    parser.add_argument(
        "--facts", "-f",
        required=True,
        help="YAML document with types, properties, components and capabilities"
    )

    parser.add_argument(
        "--catalog", "-c",
        action="append",
        default=[],
        help="YAML module catalog (may be repeated)"
    )

    parser.add_argument(
        "--no-builtin",
        action="store_true",
        help="Do not register the built-in module families"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every decision"
    )

    return parser


def _print_report(report: ActivationReport, as_json: bool) -> None:
    print(report.to_json() if as_json else report.to_compact_string())


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.get_nested("logging.level", "INFO"),
        format="%(levelname)s %(name)s: %(message)s",
    )

    include_builtin = settings.get_nested("catalog.include_builtin", True) and not args.no_builtin
    conditions = builtin_conditions()

    try:
        provider = load_facts(args.facts)
        registry = ModuleRegistry(builtin_modules() if include_builtin else ())
        for catalog in args.catalog:
            registry.register_all(load_catalog(catalog, registry=conditions))
        registry.freeze()
    except (CatalogLoadError, CatalogValidationError, ModuleRegistrationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR

    resolver = ActivationResolver(
        registry,
        provider,
        conditions=conditions,
        log_each_decision=args.verbose or None,
    )
    try:
        report = resolver.resolve()
    except ModuleOrderingError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR
    except MissingRequiredActivationError as e:
        _print_report(e.report, args.json)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_MISSING_REQUIRED

    _print_report(report, args.json)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
