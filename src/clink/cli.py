"""Command-line front end that sends requests through a configured client."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import httpx

from .client import new_client
from .decode import decode_json
from .exceptions import ClinkError
from .options import (
    Option,
    with_basic_auth,
    with_bearer_auth,
    with_headers,
    with_rate_limit,
    with_retries,
    with_transport,
    with_user_agent,
)
from .retry import retry_on_status


HTTP_METHODS = ("DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"invalid header {raw!r}, expected 'Name: value'")
    return name.strip(), value.strip()


def _parse_basic_auth(raw: str) -> tuple[str, str]:
    username, sep, password = raw.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError("basic auth must be given as 'user:password'")
    return username, password


def _read_body(raw: str | None) -> bytes | None:
    if raw is None:
        return None
    if raw.startswith("@"):
        return Path(raw[1:]).read_bytes()
    return raw.encode()


def _transport() -> httpx.Client:
    return httpx.Client(follow_redirects=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clink", description="Send an HTTP request through clink.")
    parser.add_argument("method", type=str.upper, choices=HTTP_METHODS)
    parser.add_argument("url")
    parser.add_argument("-H", "--header", dest="headers", action="append", type=_parse_header, default=[])
    parser.add_argument("--user-agent", default=os.getenv("CLINK_USER_AGENT"))
    auth = parser.add_mutually_exclusive_group()
    auth.add_argument("--bearer", metavar="TOKEN")
    auth.add_argument("--basic", metavar="USER:PASSWORD", type=_parse_basic_auth)
    parser.add_argument("--rate-limit", type=float, metavar="RPM", help="requests per minute")
    parser.add_argument("--retries", type=int, default=0)
    parser.add_argument(
        "--retry-status",
        type=int,
        action="append",
        default=[],
        help="keep retrying while the response has this status (repeatable)",
    )
    parser.add_argument("-d", "--data", help="request body, or @path to read it from a file")
    parser.add_argument("--repeat", type=int, default=1)
    parser.add_argument("--json", action="store_true", help="pretty-print the body as JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _build_options(args: argparse.Namespace, transport: httpx.Client) -> list[Option]:
    options: list[Option] = [with_transport(transport)]
    if args.headers:
        options.append(with_headers(dict(args.headers)))
    if args.user_agent:
        options.append(with_user_agent(args.user_agent))
    if args.bearer:
        options.append(with_bearer_auth(args.bearer))
    if args.basic:
        options.append(with_basic_auth(*args.basic))
    if args.rate_limit is not None:
        options.append(with_rate_limit(args.rate_limit))
    if args.retries or args.retry_status:
        predicate = retry_on_status(*args.retry_status) if args.retry_status else None
        options.append(with_retries(args.retries, predicate))
    return options


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("CLINK_LOG_LEVEL", "WARNING")
    logging.basicConfig(level=getattr(logging, level_name.upper(), logging.WARNING), format=LOG_FORMAT)


def _print_response(response: httpx.Response, as_json: bool) -> None:
    print(f"HTTP {response.status_code} {response.reason_phrase}")
    if as_json:
        print(json.dumps(decode_json(response), indent=2, sort_keys=True))
        return
    try:
        if response.text:
            print(response.text)
    finally:
        response.close()


def _main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    transport = _transport()
    try:
        options = _build_options(args, transport)
        body = _read_body(args.data)
        with new_client(*options) as client:
            for _ in range(max(1, args.repeat)):
                response = client.do(httpx.Request(args.method, args.url, content=body))
                _print_response(response, args.json)
    except (ClinkError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        transport.close()
    return 0


def main() -> None:
    raise SystemExit(_main())
