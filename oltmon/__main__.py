"""Orchestrator CLI: dispatches to sub-CLIs.

Sub-commands:
  serve   Periodic ONU sweep exposed as Prometheus metrics
  query   One-shot ONU queries (list, detail, free ids, serials, paging)

Examples:
  oltmon serve -c config.yaml

  oltmon query list 1 1

  oltmon query detail 1 1 5 --json
"""

from __future__ import annotations

import os
import sys

from tabulate import tabulate

from oltmon import __version__, configure_logging
from oltmon import glogger

COMMANDS = {
    "serve": ("oltmon.exporter.cli", "Prometheus exporter with periodic ONU sweep"),
    "query": ("oltmon.acquisition.cli", "One-shot ONU queries"),
}


def _print_usage() -> None:
    print("usage: oltmon <command> [options]\n")
    print("Available commands:")
    for cmd, (_, desc) in COMMANDS.items():
        print(f"  {cmd:14s}  {desc}")
    print("\nRun 'oltmon <command> --help' for command-specific options.")


def _print_startup_banner() -> None:
    startup_rows = [
        ["version", __version__],
        ["config", os.environ.get("OLTMON_CONFIG", "config.yaml")],
        ["snmp target", os.environ.get("SNMP_HOST", "(from config)")],
    ]

    for var in ("GITHUB_REF", "GITHUB_SHA", "BUILDTIME"):
        val = os.environ.get(var)
        if val and not val.endswith("_is_undefined"):
            startup_rows.append([var, val])

    table_str = tabulate(startup_rows, tablefmt="mixed_grid")
    lines = table_str.split("\n")
    table_width = len(lines[0])
    title = "oltmon starting up"
    title_border = "┍" + "━" * (table_width - 2) + "┑"
    title_row = "│ " + title.center(table_width - 4) + " │"
    separator = lines[0].replace("┍", "┝").replace("┑", "┥").replace("┯", "┿")

    glogger.opt(raw=True).info(
        "\n{}\n", title_border + "\n" + title_row + "\n" + separator + "\n" + "\n".join(lines[1:])
    )


def main() -> None:
    """Main entry point: dispatch to sub-CLI."""
    configure_logging()
    _print_startup_banner()

    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        _print_usage()
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    command = sys.argv[1]
    if command not in COMMANDS:
        print(f"oltmon: unknown command '{command}'\n", file=sys.stderr)
        _print_usage()
        sys.exit(1)

    module_path, _ = COMMANDS[command]

    # Import and call the sub-CLI's main(), passing remaining args
    from importlib import import_module

    module = import_module(module_path)
    module.main(sys.argv[2:])


if __name__ == "__main__":
    main()
