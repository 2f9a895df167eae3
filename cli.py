"""
Resolve one URL from the command line and print its title (line-title-get).
"""
import argparse
import logging
import sys
from dataclasses import replace

from dotenv import load_dotenv

load_dotenv()

import config
import resolver
from errors import ResolveError
from http_session import RequestParams

log = logging.getLogger("line-title-get")


def _bool(value: str) -> bool:
    v = value.strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="line-title-get", description="Web page title fetching tool.")
    p.add_argument("url")
    p.add_argument("--version", action="version", version=f"%(prog)s v{config.VERSION}")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Show extra information (repeat for debug).")
    p.add_argument("-q", "--quiet", action="store_true", help="Only print errors.")
    p.add_argument("-u", "--user-agent", help="Specify user-agent.")
    p.add_argument("-l", "--accept-lang", help="Specify accept-lang.")
    p.add_argument("--metadata", type=_bool, default=True, help="Enable image metadata [default: true].")
    p.add_argument("--mime", type=_bool, default=True, help="Enable mime reporting [default: true].")
    p.add_argument("--dump", action="store_true", help="Echo downloaded body chunks to stdout.")
    return p


def _log_level(verbose: int, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    if verbose >= 2:
        return logging.DEBUG
    return logging.INFO


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=_log_level(args.verbose, args.quiet),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    params = RequestParams.from_config()
    overrides = {}
    if args.user_agent:
        log.debug("setting user agent to %s", args.user_agent)
        overrides["user_agent"] = args.user_agent
    if args.accept_lang:
        log.debug("setting accept-lang to %s", args.accept_lang)
        overrides["accept_lang"] = args.accept_lang
    if overrides:
        params = replace(params, **overrides)

    config.REPORT_METADATA = args.metadata
    config.REPORT_MIME = args.mime
    # One-off lookups are not recorded
    config.HISTORY = False

    try:
        title = resolver.resolve_url(args.url, params, dump=args.dump)
    except ResolveError as e:
        log.error("%s", e)
        return 1
    log.info("%s", title)
    return 0


if __name__ == "__main__":
    sys.exit(main())
