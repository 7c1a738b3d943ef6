"""CLI commands for the Arivo API client."""

import argparse
import asyncio
import json
import sys


async def _run_api(args):
    from .context import StandaloneContext
    from .generic_client import arivo_api_request, arivo_api_request_all_items

    params = {}
    for p in args.param:
        k, _, v = p.partition("=")
        params[k] = v
    body = json.loads(args.body) if args.body else None

    node_parameters = {}
    if args.all:
        node_parameters["returnAll"] = True
    elif args.limit is not None:
        node_parameters["limit"] = args.limit

    async with StandaloneContext(parameters=node_parameters) as context:
        if node_parameters:
            return await arivo_api_request_all_items(
                context, args.method, args.path, body=body, query=params or None
            )
        return await arivo_api_request(context, args.method, args.path, body=body, query=params or None)


async def _run_verify(args):
    from .context import StandaloneContext
    from .load_options import verify_credentials

    async with StandaloneContext() as context:
        return {"ok": await verify_credentials(context)}


async def _run_custom_fields(args):
    from .context import StandaloneContext
    from .load_options import get_custom_fields

    async with StandaloneContext() as context:
        return await get_custom_fields(context, args.field_type)


def main():
    parser = argparse.ArgumentParser(
        description="Call the Arivo CRM API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # api subcommand
    api_parser = subparsers.add_parser(
        "api",
        help="Make an authenticated Arivo API call",
    )
    api_parser.add_argument(
        "path",
        help="API path relative to the base URL (e.g., /contacts/123)",
    )
    api_parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter (repeatable, e.g., --param per_page=100)",
    )
    api_parser.add_argument(
        "--method",
        default="GET",
        help="HTTP method (default: GET)",
    )
    api_parser.add_argument(
        "--body",
        default=None,
        help="JSON request body",
    )
    paging = api_parser.add_mutually_exclusive_group()
    paging.add_argument(
        "--all",
        action="store_true",
        help="Follow X-Next-Page and return every record",
    )
    paging.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Follow X-Next-Page until this many records are collected",
    )

    # verify subcommand
    subparsers.add_parser(
        "verify",
        help="Check that the configured API key is accepted",
    )

    # custom-fields subcommand
    fields_parser = subparsers.add_parser(
        "custom-fields",
        help="List custom fields for an entity type",
    )
    fields_parser.add_argument(
        "field_type",
        help="Entity type (e.g., person, company, deal)",
    )

    args = parser.parse_args()

    commands = {
        "api": _run_api,
        "verify": _run_verify,
        "custom-fields": _run_custom_fields,
    }
    if args.command not in commands:
        parser.print_help()
        return

    from .errors import NodeError

    try:
        result = asyncio.run(commands[args.command](args))
    except (NodeError, RuntimeError, json.JSONDecodeError) as e:
        sys.stderr.write(f"Error: {e}\n")
        sys.exit(1)
    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
