from __future__ import annotations

import argparse
import logging
import os
import sys

from modeltransform.core.config import ClientSettings
from modeltransform.core.errors import ModelTransformError
from modeltransform.core.transform import ModelTransformClient

log = logging.getLogger("modeltransform.client")


def cmd_transform(args: argparse.Namespace) -> int:
    """Upload a model file and write the transformed result.

    Security notes:
    - The token is read from the environment unless --token is given; it is
      never printed.

    """

    settings = ClientSettings.from_env().override(tenant=args.tenant, token=args.token)
    try:
        ctx = settings.build_context(logger=log)
        if args.timeout is not None:
            ctx = ctx.with_timeout(args.timeout)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    client = ModelTransformClient()
    try:
        out = client.transform_model_from_file(
            ctx, args.file, args.target_format, source_format=args.source_format
        )
    except ModelTransformError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.out:
        try:
            with open(args.out, "wb") as f:
                f.write(out)
        except OSError as e:
            print(f"error: unable to write output; err={e}", file=sys.stderr)
            return 2
        print(os.path.abspath(args.out), file=sys.stderr)
    else:
        sys.stdout.buffer.write(out)
        sys.stdout.buffer.flush()
    return 0


def register_client_commands(sub: argparse._SubParsersAction) -> None:
    """Register the `transform` command."""

    tr = sub.add_parser("transform", help="Convert a model file using the transformation service")
    tr.add_argument("file", help="Path to local model file")
    tr.add_argument("-t", "--target-format", required=True, help="Format to convert into")
    tr.add_argument("-s", "--source-format", default=None, help="Format of the input model")
    tr.add_argument("-o", "--out", default=None, help="Output file (default: stdout)")
    tr.add_argument("--tenant", default=None, help="Tenant host or base URL (MODELTRANSFORM_TENANT)")
    tr.add_argument("--token", default=None, help="Bearer token (MODELTRANSFORM_TOKEN)")
    tr.add_argument(
        "--timeout", type=float, default=None, help="Request deadline in seconds (default: none)"
    )
    tr.set_defaults(func=cmd_transform)
