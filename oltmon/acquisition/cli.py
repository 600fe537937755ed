"""CLI entry point for one-shot ONU queries against the OLT.

Examples:
  oltmon query list 1 1
  oltmon query detail 1 1 5 --json
  oltmon query empty 2 7
  oltmon query page 1 1 --page 2 --page-size 25
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Sequence

from loguru import logger
from pydantic import BaseModel
from tabulate import tabulate

from oltmon.acquisition.models import TerminalPage
from oltmon.acquisition.service import DEFAULT_PAGE_SIZE, AcquisitionService
from oltmon.config import load_config
from oltmon.exceptions import OltError

SUMMARY_COLUMNS = ["onu_id", "name", "onu_type", "serial_number", "rx_power", "status"]


def _rows(items: Sequence[BaseModel], columns: list[str]) -> list[list[Any]]:
    return [[getattr(item, col) for col in columns] for item in items]


def render(result: Any, as_json: bool = False) -> str:
    """Render a query result as a table (or JSON)."""
    if as_json:
        if isinstance(result, BaseModel):
            return result.model_dump_json(indent=2)
        return json.dumps([item.model_dump() for item in result], indent=2)

    if isinstance(result, TerminalPage):
        table = tabulate(_rows(result.items, SUMMARY_COLUMNS), headers=SUMMARY_COLUMNS, tablefmt="simple")
        return f"{table}\n\npage {result.page}/{result.page_count}  ({result.total_count} ONUs, {result.page_size} per page)"
    if isinstance(result, BaseModel):
        return tabulate(list(result.model_dump().items()), tablefmt="simple")
    if not result:
        return "(none)"
    columns = list(type(result[0]).model_fields)
    return tabulate(_rows(result, columns), headers=columns, tablefmt="simple")


async def cmd_list(service: AcquisitionService, args: argparse.Namespace) -> Any:
    """All ONUs on a PON port."""
    return await service.list_port(args.board, args.pon)


async def cmd_detail(service: AcquisitionService, args: argparse.Namespace) -> Any:
    """Detail record of one ONU."""
    return await service.get_terminal(args.board, args.pon, args.onu_id)


async def cmd_empty(service: AcquisitionService, args: argparse.Namespace) -> Any:
    return await service.free_slots(args.board, args.pon)


async def cmd_serials(service: AcquisitionService, args: argparse.Namespace) -> Any:
    return await service.list_ids_with_serial(args.board, args.pon)


async def cmd_refresh_empty(service: AcquisitionService, args: argparse.Namespace) -> Any:
    return await service.refresh_free_slots(args.board, args.pon)


async def cmd_page(service: AcquisitionService, args: argparse.Namespace) -> Any:
    return await service.list_port_paged(args.board, args.pon, args.page, args.page_size)


COMMANDS = {
    "list": cmd_list,
    "detail": cmd_detail,
    "empty": cmd_empty,
    "serials": cmd_serials,
    "refresh-empty": cmd_refresh_empty,
    "page": cmd_page,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for ONU queries."""
    parser = argparse.ArgumentParser(
        prog="oltmon query",
        description="Query ONU inventory and telemetry from the OLT via SNMPv2c.",
    )
    parser.add_argument("-c", "--config", help="Config file (default: $OLTMON_CONFIG or config.yaml)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available queries")

    def _port_parser(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("board", type=int, help="Board (slot) number")
        sub.add_argument("pon", type=int, help="PON port number")
        return sub

    _port_parser("list", help_text="List all ONUs on a port (cached)")
    detail = _port_parser("detail", help_text="Show one ONU in detail")
    detail.add_argument("onu_id", type=int, help="ONU id (1-128)")
    _port_parser("empty", help_text="List free ONU ids (cached)")
    _port_parser("serials", help_text="List ONU ids with serial numbers")
    _port_parser("refresh-empty", help_text="Recompute free ONU ids and rewrite the cache")
    page = _port_parser("page", help_text="List one page of ONUs")
    page.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    page.add_argument(
        "--page-size", type=int, default=DEFAULT_PAGE_SIZE, help=f"Page size (default: {DEFAULT_PAGE_SIZE}, max 100)"
    )

    return parser


async def _run(service: AcquisitionService, parsed: argparse.Namespace) -> Any:
    try:
        return await COMMANDS[parsed.command](service, parsed)
    finally:
        await service.close()


def main(args: list[str] | None = None) -> None:
    """Main entry point for the query CLI."""
    parser = build_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        sys.exit(1)

    if not parsed.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    try:
        cfg = load_config(parsed.config)
        service = AcquisitionService.from_config(cfg)
        result = asyncio.run(_run(service, parsed))
    except OltError as e:
        logger.error(f"{parsed.command} failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)

    print(render(result, as_json=parsed.json))


if __name__ == "__main__":
    main()
