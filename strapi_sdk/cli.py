"""
Strapi command line client.

Keeps the JWT in a local JSON file between invocations, so

    python -m strapi_sdk login admin
    python -m strapi_sdk find articles --query "_sort=title:ASC&_limit=5"

works like a logged-in session.
"""

import argparse
import asyncio
import getpass
import json
import logging
import mimetypes
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Optional

import httpx

from .client import Strapi
from .config import load_config
from .errors import StrapiHTTPError
from .query import parse
from .storage import LocalStorage

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_json(data: Any):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _json_arg(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")


def _query_params(value: Optional[str]) -> Optional[dict]:
    return parse(value) if value else None


def _password(value: Optional[str], prompt: str = "Password: ") -> str:
    return value if value is not None else getpass.getpass(prompt)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strapi",
        description="Command line client for a Strapi backend"
    )
    parser.add_argument("--url", help="Strapi URL (default: $STRAPI_URL or http://localhost:1337)")
    parser.add_argument("--token-file", help="File keeping the JWT between runs (default: $STRAPI_TOKEN_FILE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Login with identifier (email or username) and password")
    p.add_argument("identifier")
    p.add_argument("--password", help="Password (prompted if omitted)")

    p = sub.add_parser("register", help="Register a new user")
    p.add_argument("username")
    p.add_argument("email")
    p.add_argument("--password", help="Password (prompted if omitted)")

    p = sub.add_parser("forgot-password", help="Send the reset password email")
    p.add_argument("email")

    p = sub.add_parser("reset-password", help="Reset the password with the emailed code")
    p.add_argument("code")
    p.add_argument("--password", help="New password (prompted if omitted)")

    sub.add_parser("logout", help="Forget the stored token")
    sub.add_parser("me", help="Show the authenticated user")

    for name, help_text in (("find", "List entries"), ("count", "Count entries")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("entity", help="Pluralized entry type, e.g. articles")
        p.add_argument("--query", "-q", help="Filters as a query string, e.g. 'title_contains=foo&_limit=5'")

    p = sub.add_parser("get", help="Get one entry")
    p.add_argument("entity")
    p.add_argument("id")

    p = sub.add_parser("create", help="Create an entry")
    p.add_argument("entity")
    p.add_argument("data", type=_json_arg, help="Entry as JSON")

    p = sub.add_parser("update", help="Update an entry")
    p.add_argument("entity")
    p.add_argument("id")
    p.add_argument("data", type=_json_arg, help="Fields as JSON")

    p = sub.add_parser("delete", help="Delete an entry")
    p.add_argument("entity")
    p.add_argument("id")

    p = sub.add_parser("files", help="List uploaded files")
    p.add_argument("--query", "-q", help="Filters as a query string")

    p = sub.add_parser("file", help="Get one uploaded file")
    p.add_argument("id")

    p = sub.add_parser("search-files", help="Search uploaded files")
    p.add_argument("keywords")

    p = sub.add_parser("upload", help="Upload files")
    p.add_argument("paths", nargs="+", type=Path)
    p.add_argument("--ref", help="Model to attach the files to")
    p.add_argument("--ref-id", help="ID of the entry to attach the files to")
    p.add_argument("--field", help="Field of the entry")

    p = sub.add_parser("graphql", help="Run a GraphQL query")
    p.add_argument("query")
    p.add_argument("--variables", type=_json_arg, help="Variables as JSON")

    p = sub.add_parser("connect-url", help="Print the provider login URL")
    p.add_argument("provider")

    p = sub.add_parser("provider-callback", help="Finish a provider login")
    p.add_argument("provider")
    p.add_argument("query_string", help="Query string of the redirect URL, e.g. '?access_token=...'")

    return parser


async def run(args: argparse.Namespace, strapi: Strapi) -> Any:
    """Run one command and return what should be printed."""
    cmd = args.command

    if cmd == "login":
        auth = await strapi.login({"identifier": args.identifier, "password": _password(args.password)})
        return auth.user
    if cmd == "register":
        auth = await strapi.register({
            "username": args.username,
            "email": args.email,
            "password": _password(args.password),
        })
        return auth.user
    if cmd == "forgot-password":
        await strapi.forgot_password({"email": args.email})
        return {"ok": True}
    if cmd == "reset-password":
        password = _password(args.password, "New password: ")
        confirmation = password if args.password is not None else getpass.getpass("Confirm password: ")
        auth = await strapi.reset_password({
            "code": args.code,
            "password": password,
            "passwordConfirmation": confirmation,
        })
        return auth.user
    if cmd == "logout":
        strapi.logout()
        return {"ok": True}
    if cmd == "me":
        return await strapi.fetch_user()

    if cmd == "find":
        return await strapi.find(args.entity, _query_params(args.query))
    if cmd == "count":
        return await strapi.count(args.entity, _query_params(args.query))
    if cmd == "get":
        return await strapi.find_by_id(args.entity, args.id)
    if cmd == "create":
        return await strapi.create(args.entity, args.data)
    if cmd == "update":
        return await strapi.update(args.entity, args.id, args.data)
    if cmd == "delete":
        return await strapi.delete(args.entity, args.id)

    if cmd == "files":
        return await strapi.find_files(_query_params(args.query))
    if cmd == "file":
        return await strapi.find_file(args.id)
    if cmd == "search-files":
        return await strapi.search_files(args.keywords)
    if cmd == "upload":
        fields = {"ref": args.ref, "refId": args.ref_id, "field": args.field}
        fields = {k: v for k, v in fields.items() if v is not None}
        with ExitStack() as stack:
            files = []
            for path in args.paths:
                content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
                files.append(("files", (path.name, stack.enter_context(path.open("rb")), content_type)))
            return await strapi.upload(files, data=fields or None)

    if cmd == "graphql":
        return await strapi.graphql(args.query, args.variables)
    if cmd == "connect-url":
        return strapi.get_provider_authentication_url(args.provider)
    if cmd == "provider-callback":
        auth = await strapi.authenticate_provider(args.provider, query_string=args.query_string)
        return {"jwt": auth.token}

    raise ValueError(f"Unknown command: {cmd}")


async def _main(args: argparse.Namespace) -> int:
    config = load_config()
    if args.url:
        config.url = args.url
    token_file = args.token_file or config.token_file

    async with Strapi(config, local_storage=LocalStorage(token_file)) as strapi:
        try:
            result = await run(args, strapi)
        except StrapiHTTPError as e:
            logger.debug(f"Error payload: {e.original}")
            print(f"Error ({e.status_code}): {e}", file=sys.stderr)
            return 1
        except httpx.TransportError as e:
            print(f"Could not reach {config.url}: {e}", file=sys.stderr)
            return 1

    if isinstance(result, str):
        print(result)
    else:
        print_json(result)
    return 0


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
