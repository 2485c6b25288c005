from __future__ import annotations

import argparse
import logging
import sys
from typing import List

from modeltransform.cli.client_cmds import register_client_commands
from modeltransform.core.config import LOG_LEVELS, ClientSettings, parse_log_level


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the stub transformation service.

    Security notes:
    - If MODELTRANSFORM_API_TOKENS is set, requests must carry a matching bearer token.
    - Bind to 127.0.0.1 by default (safer than 0.0.0.0).

    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from modeltransform.api.server import create_app

    app = create_app()
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level.lower())
    return 0


def _log_level_arg(raw: str) -> str:
    try:
        return parse_log_level(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="modeltransform", description="Model transformation client")
    p.add_argument(
        "--log-level",
        type=_log_level_arg,
        default=ClientSettings.from_env().log_level,
        help=f"Logging level, one of {', '.join(LOG_LEVELS)} (default: MODELTRANSFORM_LOG_LEVEL or INFO)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    register_client_commands(sub)

    # --- stub service ---
    sv = sub.add_parser("serve", help="Run the stub transformation service")
    sv.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    sv.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
