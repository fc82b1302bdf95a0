"""Command-line entry point.

Usage:
    disco https://gis.example.no/arcgis/rest/services
    disco https://.../FeatureServer/3 --rows objectid,name --notnull name
    disco https://.../FeatureServer --schema schema.json
    disco https://.../FeatureServer --token -u user:pass
    eval "$(disco completion)"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from esri_disco import __version__
from esri_disco.config import complete_urls, config_path, find_token_entry, load_config, write_token
from esri_disco.discover import DiscoverOptions, discover
from esri_disco.errors import AuthError, ConfigError, TokenExchangeError, TransportError
from esri_disco.models import DiscoConfig
from esri_disco.tokens import EsriTokenService
from esri_disco.transport import EsriClient

log = logging.getLogger("disco")

BASH_COMPLETION = """\
_disco_completions() {
    local cur="${COMP_WORDS[COMP_CWORD]}"
    COMPREPLY=( $(disco --complete "$cur" 2>/dev/null) )
}
complete -F _disco_completions disco
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="disco",
        description="Discover folders, services, layers and fields of an ArcGIS REST endpoint.",
        epilog='Run "disco completion" to print a bash completion script.',
    )
    parser.add_argument("url", nargs="?", help="The URL to fetch data from")
    parser.add_argument("-f", "--fields", action="store_true", help="Display all fields")
    parser.add_argument("-nn", "--notnull", metavar="FIELD",
                        help="Count features where FIELD is not null")
    parser.add_argument("-r", "--rows", metavar="FIELDS",
                        help="Comma-separated fields; list the last rows ordered by the first")
    parser.add_argument("-z", "--schema", metavar="PATH",
                        help="Write the schema of every layer to PATH")
    parser.add_argument("-gt", "--token", action="store_true", help="Generate a token and store it")
    parser.add_argument("-u", "--credentials", metavar="USER:PASS",
                        help="username:password for the token service")
    parser.add_argument("-w", "--where", metavar="PARAMS",
                        help="Raw query parameters appended to the discovery request")
    parser.add_argument("--no-count", dest="do_count", action="store_false", help="Skip the feature count")
    parser.add_argument("--no-extent", dest="do_extent", action="store_false", help="Skip extent probes")
    parser.add_argument("--no-age", dest="do_age", action="store_false", help="Skip the latest timestamp probe")
    parser.add_argument("-k", "--insecure", action="store_true", help="Do not verify TLS certificates")
    parser.add_argument("--config", metavar="PATH", help="Config file (default: $DISCO_CONFIG or ./disco.json)")
    parser.add_argument("--debug", action="store_true", help="Log every request URL")
    parser.add_argument("--complete", metavar="PREFIX", help=argparse.SUPPRESS)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def log_level(name: str) -> int | None:
    """Numeric level for a name like ``WARNING``; ``None`` if unknown."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else None


def resolve_token(config: DiscoConfig, url: str) -> str:
    """Cached token for the URL's prefix, else ``$TOKEN``."""
    match = find_token_entry(config, url)
    if match and match[1].token:
        return match[1].token
    token = os.getenv("TOKEN")
    if not token:
        raise AuthError("Bearer token is required. Set TOKEN environment variable or pass --token option.")
    return token


async def generate_token(args: argparse.Namespace, config: DiscoConfig, path: Path) -> int:
    match = find_token_entry(config, args.url)
    if match is None or not match[1].token_url:
        log.error("No token endpoint configured for %s in %s", args.url, path)
        return 1
    prefix, entry = match

    credentials = args.credentials
    if not credentials and entry.username and entry.password:
        credentials = f"{entry.username}:{entry.password}"
    if not credentials:
        log.error("No credentials: pass --credentials user:pass or set username/password in %s", path)
        return 1
    username, _, password = credentials.partition(":")

    log.info("Fetching token from %s", entry.token_url)
    async with EsriClient(verify_tls=config.verify_tls and not args.insecure, timeout=config.timeout,
                          debug=args.debug) as client:
        try:
            token = await EsriTokenService(entry.token_url, client).get_token(username, password, entry.referer)
        except (TokenExchangeError, TransportError) as exc:
            log.error("Failed to generate token: %s", exc)
            return 1

    log.info("Generated TOKEN: %s", token)
    try:
        write_token(path, args.url, token)
    except ConfigError as exc:
        log.warning("%s", exc)
    return 0


async def run(args: argparse.Namespace, config: DiscoConfig, path: Path) -> int:
    if args.token:
        return await generate_token(args, config, path)

    try:
        token = resolve_token(config, args.url)
    except AuthError as exc:
        log.error("%s", exc)
        return 1

    options = DiscoverOptions(
        fields=args.fields,
        notnull=args.notnull,
        rows=args.rows,
        schema=args.schema,
        where=args.where,
        do_count=args.do_count,
        do_extent=args.do_extent,
        do_age=args.do_age,
    )
    async with EsriClient(token=token, verify_tls=config.verify_tls and not args.insecure,
                          timeout=config.timeout, debug=args.debug) as client:
        try:
            await discover(client, args.url, options, config)
        except TransportError as exc:
            log.error("Failed to discover services: %s", exc)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if argv[:1] == ["completion"]:
        print(BASH_COMPLETION, end="")
        return 0

    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    level_name = os.getenv("DISCO_LOG_LEVEL", "INFO").upper()
    level = log_level(level_name)
    logging.basicConfig(level=logging.DEBUG if args.debug else level or logging.INFO,
                        format="%(asctime)s  %(levelname)-8s  %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if level is None:
        log.warning("Unknown DISCO_LOG_LEVEL %r, using INFO", level_name)

    path = config_path(args.config)
    try:
        config = load_config(path)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    if args.complete is not None:
        for url in complete_urls(config, args.complete):
            print(url)
        return 0

    if not args.url:
        parser.error("Please specify a URL")

    return asyncio.run(run(args, config, path))


if __name__ == "__main__":
    sys.exit(main())
