"""Command-line interface for manure N inventories.

Builds a scenario from a YAML file and/or flags, runs the inventory and
prints a summary (or JSON). Also lets you inspect the emission factors and
defaults that apply to an animal type.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from emep_mms.core import MMSError, format_mass, settings, setup_logging
from emep_mms.data.tables import CONVERSION_TABLE, ConfigStore, YamlConfigStore, default_store
from emep_mms.emissions.factors import compile_emission_factors
from emep_mms.inventory.engine import InventoryEngine, InventoryResult
from emep_mms.livestock.types import subtypes_of
from emep_mms.livestock.user_input import (
    build_input,
    default_parameters,
    read_scenario,
    validation_message_string,
)

# Flag name -> input parameter for numeric scenario options
NUMERIC_OPTIONS = [
    "animal_number",
    "excretion_coefficient",
    "fraction_grazing",
    "fraction_yards",
    "fraction_housing",
    "fraction_tan",
    "fraction_manure_slurry",
    "fraction_manure_solid",
    "bedding_amount",
    "fraction_storage_slurry",
    "fraction_biogas_slurry",
    "fraction_storage_solid",
    "fraction_biogas_solid",
]


# =============================================================================
# Helpers
# =============================================================================


def parse_method_share(text: str) -> tuple[str, str, float]:
    """Parse ``manure:method=share`` (e.g. ``slurry:trailing_hose=0.5``)."""
    try:
        target, share = text.split("=", 1)
        manure_type, method = target.split(":", 1)
        return manure_type.strip(), method.strip(), float(share)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected manure:method=share, got {text!r}") from None


def scenario_params(args: argparse.Namespace) -> dict[str, Any]:
    """Merge command-line options into a parameter dict (flags win over file)."""
    params: dict[str, Any] = {}
    if args.animal_type:
        params["animal_type"] = args.animal_type
    for name in NUMERIC_OPTIONS:
        value = getattr(args, name)
        if value is not None:
            params[name] = value
    if args.crust:
        params["slurry_crust"] = True
    if args.method:
        methods: dict[str, dict[str, float]] = {}
        for manure_type, method, share in args.method:
            methods.setdefault(manure_type, {})[method] = share
        params["application_methods"] = methods
    return params


def get_store(args: argparse.Namespace) -> ConfigStore:
    if getattr(args, "data_dir", None):
        return YamlConfigStore(args.data_dir)
    return default_store()


def print_summary(result: InventoryResult) -> None:
    """Print a human-readable inventory summary."""
    print(f"Manure N inventory: {result['animal_type']} ({result['animal_category']})")
    print("=" * 70)
    print()

    excretion = result["excretion"]
    print(f"{'Excreted N':<30} {format_mass(excretion['n']):>15}")
    print(f"{'  of which TAN':<30} {format_mass(excretion['tan']):>15}")
    for pathway in ("grazing", "yards", "housing"):
        print(f"{'  ' + pathway:<30} {format_mass(excretion[f'{pathway}_n']):>15}")
    print()

    print(f"{'Stage':<20} {'NH3-N':>12} {'N2O-N':>12} {'NO-N':>12} {'N2-N':>12}")
    print("-" * 70)
    rows = [
        ("Grazing", result["grazing"]["nh3_n"], 0.0, 0.0, 0.0),
        ("Yards", result["yards"]["nh3_n"], 0.0, 0.0, 0.0),
        ("Housing", result["housing"]["nh3_n"], 0.0, 0.0, 0.0),
        ("Storage", result["storage"]["nh3_n"], result["storage"]["n2o_n"],
         result["storage"]["no_n"], result["storage"]["n2_n"]),
        ("Digestate", result["digestate"]["nh3_n"], 0.0, 0.0, 0.0),
        ("Application", result["application"]["nh3_n"], 0.0, 0.0, 0.0),
    ]
    for name, nh3, n2o, no, n2 in rows:
        print(f"{name:<20} {nh3:>12.1f} {n2o:>12.1f} {no:>12.1f} {n2:>12.1f}")
    print("-" * 70)
    total = result["total"]
    print(f"{'Total (kg N)':<20} {total['nh3_n']:>12.1f} {total['n2o_n']:>12.1f} {total['no_n']:>12.1f} {total['n2_n']:>12.1f}")
    print()
    print(f"NH3: {format_mass(total['nh3'])}   N2O: {format_mass(total['n2o'])}   NO: {format_mass(total['no'])}")

    print()
    print("Applied to field")
    print("-" * 70)
    for manure_type in ("slurry", "solid"):
        applied = result["application"][manure_type]
        methods = ", ".join(f"{name} {m['share']:.0%}" for name, m in applied["methods"].items()) or "none"
        print(
            f"{manure_type:<8} N {format_mass(applied['n']):>12}  TAN {format_mass(applied['tan']):>12}"
            f"  net N {format_mass(applied['net_n']):>12}  ({methods})"
        )


# =============================================================================
# Commands
# =============================================================================


def cmd_run(args: argparse.Namespace) -> None:
    """Run an inventory for one scenario."""
    store = get_store(args)
    params = scenario_params(args)
    if args.input:
        params = {**read_scenario(args.input), **params}
    record, valid, messages = build_input(params, store)

    if not valid:
        print("Invalid input:", file=sys.stderr)
        print(validation_message_string(messages), file=sys.stderr)
        sys.exit(1)

    check = True if args.check else None
    result = InventoryEngine(store=store, check=check).run(record)

    if args.json:
        print(json.dumps({"input": record.to_dict(), "result": result}, indent=2))
    else:
        print_summary(result)


def cmd_factors(args: argparse.Namespace) -> None:
    """Print compiled emission factors for an animal type."""
    store = get_store(args)
    factors = compile_emission_factors(args.animal_type, args.crust, store)

    if args.json:
        print(json.dumps(factors.as_dict(), indent=2))
        return

    print(f"Emission factors: {factors.animal_type} ({factors.animal_category}), crust={factors.slurry_crust}")
    print("=" * 70)
    for stage, gases in factors.as_dict().items():
        for gas, by_manure in gases.items():
            for manure_type, value in by_manure.items():
                if isinstance(value, dict):
                    value = ", ".join(f"{method}={ef:g}" for method, ef in value.items())
                print(f"{stage:<12} {gas:<5} {manure_type:<8} {value}")


def cmd_types(args: argparse.Namespace) -> None:
    """List livestock categories and their subtypes."""
    conversions = get_store(args).table(CONVERSION_TABLE) or {}
    for category, subtypes in conversions.items():
        print(f"{category:<15} {', '.join(subtypes_of(subtypes))}")


def cmd_defaults(args: argparse.Namespace) -> None:
    """Print table defaults for an animal type."""
    defaults = default_parameters(args.animal_type, get_store(args))
    if args.json:
        print(json.dumps(defaults, indent=2))
        return
    for name, value in defaults.items():
        print(f"{name:<25} {value}")


# -----------------------------------------------------------------------------
# CLI Entry Point
# -----------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Nitrogen emissions inventory for livestock manure management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  emep-mms run --input scenario.yaml               Run a scenario file
  emep-mms run --animal-type dairy_cattle --animal-number 100 \\
      --fraction-manure-slurry 0.7 --fraction-manure-solid 0.3 \\
      --fraction-storage-slurry 0.8 --fraction-biogas-slurry 0.1 \\
      --fraction-storage-solid 1 --fraction-biogas-solid 0 --json
  emep-mms factors dairy_cattle --crust             Show emission factors
  emep-mms defaults laying_hens                     Show table defaults
  emep-mms types                                    List animal types
""",
    )
    parser.add_argument("--data-dir", type=Path, help="Directory with reference tables (YAML)")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # run - Inventory for one scenario
    run_parser = subparsers.add_parser("run", help="Run an inventory for one scenario")
    run_parser.add_argument("--input", type=Path, help="YAML scenario file")
    run_parser.add_argument("--animal-type", help="Animal category or subtype")
    for name in NUMERIC_OPTIONS:
        run_parser.add_argument(f"--{name.replace('_', '-')}", dest=name, type=float)
    run_parser.add_argument("--crust", action="store_true", help="Stored slurry has a surface crust")
    run_parser.add_argument(
        "--method",
        action="append",
        type=parse_method_share,
        help="Application method share, e.g. slurry:trailing_hose=0.5 (repeatable)",
    )
    run_parser.add_argument("--check", action="store_true", help="Enable mass balance checks")
    run_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # factors - Compiled emission factors
    factors_parser = subparsers.add_parser("factors", help="Show emission factors for an animal type")
    factors_parser.add_argument("animal_type")
    factors_parser.add_argument("--crust", action="store_true", help="Stored slurry has a surface crust")
    factors_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # types - Livestock categories
    subparsers.add_parser("types", help="List livestock categories and subtypes")

    # defaults - Table defaults
    defaults_parser = subparsers.add_parser("defaults", help="Show default parameters for an animal type")
    defaults_parser.add_argument("animal_type")
    defaults_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    commands = {
        "run": cmd_run,
        "factors": cmd_factors,
        "types": cmd_types,
        "defaults": cmd_defaults,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return

    try:
        command(args)
    except MMSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    cli()
