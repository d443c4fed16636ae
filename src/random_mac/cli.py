from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .errors import RandomMacError
from .interface import InterfaceMutator, MutationResult
from .registry import VendorRegistry, update
from .settings import default_database_path, default_datasource_path
from .sources import available_sources, load_datasource
from .vendor import VendorRecord, format_prefix, random_address, verify_prefix


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_registry(args: argparse.Namespace, console: Console) -> VendorRegistry:
    registry = VendorRegistry.load_or_fetch(load_datasource(args.datasource), args.database)
    if registry.fetched:
        console.print(f"Database not found, downloaded [bold]{len(registry)}[/bold] entries!")
    return registry


def _record_table(rec: VendorRecord) -> Table:
    t = Table(show_header=False)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Prefix", rec.prefix)
    t.add_row("Vendor", escape(rec.vendor_name))
    t.add_row("Private", "yes" if rec.is_private else "no")
    t.add_row("Block type", rec.block_type)
    return t


def _report(console: Console, result: MutationResult) -> None:
    name = escape(result.interface)
    if result.ok:
        console.print(f"Updated MAC address of {name} to [bold]{result.address}[/bold]")
    elif result.failed_step == "probe":
        console.print(f"[yellow]{escape(result.error or '')}, skipping![/yellow]")
    else:
        console.print(
            f"[red]Failed to update MAC address of {name}[/red] "
            f"(step {result.failed_step}): {escape(result.error or '')}"
        )


# -------------------------------------------------
# Commands
# -------------------------------------------------

def cmd_update(args: argparse.Namespace) -> int:
    console = _console()
    console.print("Updating database...")
    registry = update(load_datasource(args.datasource), args.database)
    console.print(f"Database updated, found [bold]{len(registry)}[/bold] entries!")
    return 0


def cmd_random_prefix(args: argparse.Namespace) -> int:
    console = _console()
    verify_prefix(args.prefix)
    prefix = format_prefix(args.prefix)

    if not args.interfaces:
        console.print(f"Generating random MAC address with prefix {prefix}...")
        console.print(f"Random MAC address: [bold]{random_address(prefix)}[/bold]")
        return 0

    mutator = InterfaceMutator()
    mutator.require_privilege()

    registry = _load_registry(args, console)
    rec = registry.lookup_by_prefix(prefix)
    if rec is None:
        console.print(f"No vendor found with prefix {prefix}!")
        return 0

    for result in mutator.apply(rec, args.interfaces):
        _report(console, result)
    return 0


def cmd_random_vendor(args: argparse.Namespace) -> int:
    console = _console()
    registry = _load_registry(args, console)

    rec = registry.lookup_by_vendor(args.vendor)
    if rec is None:
        console.print(f"No vendor found with name {escape(args.vendor)}!")
        return 0

    if not args.interfaces:
        console.print(f"Random MAC address: [bold]{rec.random_address()}[/bold]")
        return 0

    mutator = InterfaceMutator()
    mutator.require_privilege()
    console.print(f"Generating random MAC address with vendor {escape(rec.vendor_name)}...")
    for result in mutator.apply(rec, args.interfaces):
        _report(console, result)
    return 0


def cmd_random_interface(args: argparse.Namespace) -> int:
    console = _console()
    mutator = InterfaceMutator()
    if args.change:
        mutator.require_privilege()

    registry = _load_registry(args, console)
    console.print(
        f"Generating random MAC address for interface {escape(', '.join(args.interfaces))}..."
    )
    for outcome in mutator.randomize(registry, args.interfaces, change=args.change):
        name = escape(outcome.interface)
        if outcome.error:
            console.print(f"[yellow]{escape(outcome.error)}[/yellow]")
        elif outcome.mutation is not None:
            _report(console, outcome.mutation)
        else:
            console.print(f"MAC address for interface {name}: [bold]{outcome.address}[/bold]")
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    console = _console()
    registry = _load_registry(args, console)
    rec = registry.lookup_by_prefix(args.address)
    if rec is None:
        console.print(f"No vendor found for {escape(args.address)}!")
        return 0
    console.print(_record_table(rec))
    return 0


def cmd_sources(args: argparse.Namespace) -> int:
    console = _console()
    for name in available_sources():
        console.print(name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="random-mac")
    p.add_argument(
        "--datasource",
        type=Path,
        default=None,
        help="Path to the datasource file",
    )
    p.add_argument("--database", type=Path, default=None, help="Path to the database file")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    update_cmd = sub.add_parser("update", help="Update the database")
    update_cmd.set_defaults(func=cmd_update)

    random_cmd = sub.add_parser("random", help="Generates a random MAC address")
    random_sub = random_cmd.add_subparsers(dest="random_cmd", required=True)

    vendor_cmd = random_sub.add_parser("vendor", help="Generates a random MAC address from a vendor")
    vendor_cmd.add_argument("vendor", help="Vendor to use")
    vendor_cmd.add_argument("interfaces", nargs="*", help="Change the MAC address for interface")
    vendor_cmd.set_defaults(func=cmd_random_vendor)

    prefix_cmd = random_sub.add_parser("prefix", help="Generates a random MAC address from a prefix")
    prefix_cmd.add_argument("prefix", help="MAC address prefix to use")
    prefix_cmd.add_argument("interfaces", nargs="*", help="Change the MAC address for interface")
    prefix_cmd.set_defaults(func=cmd_random_prefix)

    iface_cmd = random_sub.add_parser(
        "interface",
        help="Generates a random MAC address for the given interfaces",
    )
    iface_cmd.add_argument("-c", "--change", action="store_true", help="Change the MAC address")
    iface_cmd.add_argument("interfaces", nargs="+", help="Interfaces to use")
    iface_cmd.set_defaults(func=cmd_random_interface)

    lookup_cmd = sub.add_parser("lookup", help="Show the vendor registered for a MAC address")
    lookup_cmd.add_argument("address", help="MAC address, e.g. AA:BB:CC:11:22:33")
    lookup_cmd.set_defaults(func=cmd_lookup)

    sources_cmd = sub.add_parser("sources", help="List known datasource formats")
    sources_cmd.set_defaults(func=cmd_sources)

    return p


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    if args.datasource is None:
        args.datasource = default_datasource_path()
    if args.database is None:
        args.database = default_database_path()

    try:
        return args.func(args)
    except RandomMacError as e:
        # Expected failures are reported, not signalled through the exit code
        _console().print(f"[red]{escape(str(e))}[/red]")
        return 0


def main() -> None:
    try:
        raise SystemExit(run())
    except KeyboardInterrupt:
        raise SystemExit(2)
    except Exception as e:
        Console().print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(2)
