# CLI interface for mcplens
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from mcplens import __version__
from mcplens.app import Lens
from mcplens.models import FILTERS, SCOPES, ServerEntry
from mcplens.settings import Settings

# ABOUTME: Exit codes
# 0 = success, 1 = partial success, 2 = config error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3


def build_lens(args: argparse.Namespace) -> Lens:
    """Create a Lens from global CLI options.

    ABOUTME: --global-config/--local-config override the default paths
    ABOUTME: Project directory defaults to the current directory

    Raises:
        ValueError: If MCPLENS_* settings are invalid
    """
    settings = Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    project_dir = Path(args.project) if args.project else Path.cwd()
    lens = Lens(project_dir=project_dir, settings=settings)
    if args.global_config:
        lens.registry.set_custom_path("global", Path(args.global_config))
    if args.local_config:
        lens.registry.set_custom_path("local", Path(args.local_config))
    return lens


def print_entry(entry: ServerEntry, verbose: bool = False) -> None:
    """Print one server entry in list format."""
    print(f"  {entry.name} [{entry.status}]")
    print(f"    type: {entry.config.type}")
    if entry.config.command:
        print(f"    command: {entry.config.command}")
    if entry.config.args:
        print(f"    args: {' '.join(entry.config.args)}")
    if entry.config.disabled:
        print("    disabled")

    if verbose:
        print(f"    scope: {entry.scope}")
        if entry.description:
            print(f"    description: {entry.description}")
        if entry.config.version:
            print(f"    version: {entry.config.version}")
        if entry.config.env:
            # Values may hold secrets
            print(f"    env: {', '.join(sorted(entry.config.env))}")
        if entry.config.always_allow:
            print(f"    alwaysAllow: {', '.join(sorted(entry.config.always_allow))}")


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: Loads both scopes and displays the filtered view
    """
    print(f"mcplens list v{__version__}")
    print()

    try:
        lens = build_lens(args)
        lens.registry.set_filter(args.filter)
        asyncio.run(lens.refresh())

        shown = 0
        for scope in SCOPES:
            if args.filter not in ("both", scope):
                continue
            entries = [e for e in lens.registry.get_entries() if e.scope == scope]
            path = lens.registry.get_config_path(scope)
            print(f"{scope.capitalize()} servers ({path or 'no project'}):")
            if not entries:
                print("  (none)")
            for entry in entries:
                print_entry(entry)
            shown += len(entries)
            print()

        if shown == 0:
            print("No MCP servers found. Use --global-config/--local-config to locate a file.")
            return EXIT_SUCCESS

        print(f"Total: {shown} server(s)")
        return EXIT_SUCCESS

    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Fatal error: {e}")
        return EXIT_FATAL


def cmd_show(args: argparse.Namespace) -> int:
    """Execute show command.

    ABOUTME: Name lookup prefers the local scope unless --scope is given
    """
    print(f"mcplens show v{__version__}")
    print()

    try:
        lens = build_lens(args)
        asyncio.run(lens.refresh())

        entry = lens.resolve(args.name, args.scope)
        if entry is None:
            print(f"Server '{args.name}' not found.")
            return EXIT_CONFIG_ERROR

        print_entry(entry, verbose=True)
        return EXIT_SUCCESS

    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Fatal error: {e}")
        return EXIT_FATAL


async def run_servers(lens: Lens, names: list[str], scope: str | None, filter: str) -> int:
    """Start servers, report status changes, and stop everything on exit.

    ABOUTME: One line per failed start, one aggregated line for stop failures
    ABOUTME: Returns when every started process exited or on cancellation
    """
    await lens.refresh()

    if names:
        entries: list[ServerEntry] = []
        for name in names:
            entry = lens.resolve(name, scope)  # type: ignore[arg-type]
            if entry is None:
                print(f"Error: Server '{name}' not found.")
                return EXIT_CONFIG_ERROR
            entries.append(entry)
    else:
        entries = [e for e in lens.registry.get_entries(filter) if not e.config.disabled]  # type: ignore[arg-type]

    if not entries:
        print("No servers to run.")
        return EXIT_SUCCESS

    last_status = {entry.key: entry.status for entry in entries}

    def on_change() -> None:
        for entry in entries:
            if entry.status != last_status[entry.key]:
                last_status[entry.key] = entry.status
                print(f"  {entry.name} ({entry.scope}): {entry.status}")

    unsubscribe = lens.notifier.subscribe(on_change)
    start_failures = 0
    try:
        started = []
        for entry in entries:
            if await lens.supervisor.start(entry):
                started.append(entry)
            else:
                start_failures += 1
                print(f"  Error: could not start '{entry.name}' ({entry.scope})")

        if started:
            print("Press Ctrl+C to stop.")
            await asyncio.gather(*(lens.supervisor.wait(entry) for entry in started))
    finally:
        report = await lens.shutdown()
        unsubscribe()
        if not report.ok:
            print(report.summary())

    if start_failures or not report.ok:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command.

    ABOUTME: Keeps running until the servers exit or Ctrl+C
    """
    print(f"mcplens run v{__version__}")
    print()

    try:
        lens = build_lens(args)
        return asyncio.run(run_servers(lens, args.names, args.scope, args.filter))
    except KeyboardInterrupt:
        print()
        print("Interrupted, servers stopped.")
        return EXIT_SUCCESS
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Fatal error: {e}")
        return EXIT_FATAL


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to appropriate command
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = argparse.ArgumentParser(
        prog="mcplens",
        description="Explore and run the MCP servers of your global and project mcp.json"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"mcplens v{__version__}"
    )
    parser.add_argument(
        "--global-config",
        help="Path to the global mcp.json (overrides the editor default)"
    )
    parser.add_argument(
        "--local-config",
        help="Path to the local mcp.json (overrides <project>/.vscode/mcp.json)"
    )
    parser.add_argument(
        "--project",
        help="Project directory (default: current directory)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List servers from both scopes"
    )
    list_parser.add_argument(
        "--filter",
        choices=FILTERS,
        default="both",
        help="Which scopes to show"
    )

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show details of one server"
    )
    show_parser.add_argument(
        "name",
        help="Name of the server"
    )
    show_parser.add_argument(
        "--scope",
        choices=SCOPES,
        help="Scope to look in (default: local, then global)"
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Start servers and supervise them until they exit or Ctrl+C"
    )
    run_parser.add_argument(
        "names",
        nargs="*",
        help="Servers to start (default: every enabled server in the filter)"
    )
    run_parser.add_argument(
        "--scope",
        choices=SCOPES,
        help="Scope to look names up in (default: local, then global)"
    )
    run_parser.add_argument(
        "--filter",
        choices=FILTERS,
        default="both",
        help="Scopes to start servers from when no names are given"
    )

    args = parser.parse_args(argv)

    # Dispatch to command
    if args.command == "list":
        return cmd_list(args)
    elif args.command == "show":
        return cmd_show(args)
    elif args.command == "run":
        return cmd_run(args)
    else:
        # No command specified, show help
        parser.print_help()
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
