"""Command-line front end for CryptoGuard.

Start here with `python -m cryptoguard.frontend.cli.app -c checksum -i FILE`
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence, TextIO

from cryptoguard.core.exceptions import (
    CryptoError,
    CryptoGuardError,
    PreconditionError,
    StreamIOError,
    UsageError,
)
from cryptoguard.frontend.cli.context import AppContext, build_context
from cryptoguard.frontend.cli.logging_config import configure_logging
from cryptoguard.frontend.cli.options import Command, parse_options

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_PRECONDITION = 3
EXIT_CRYPTO = 4
EXIT_IO = 5


def exit_code_for(exc: BaseException) -> int:
    """Map a failure to the process exit code."""
    if isinstance(exc, UsageError):
        return EXIT_USAGE
    if isinstance(exc, PreconditionError):
        return EXIT_PRECONDITION
    if isinstance(exc, CryptoError):
        return EXIT_CRYPTO
    if isinstance(exc, (StreamIOError, OSError)):
        return EXIT_IO
    return EXIT_FAILURE


def _run_cipher(ctx: AppContext, out: TextIO) -> None:
    opts = ctx.options
    verb = "encrypted" if opts.command is Command.ENCRYPT else "decrypted"
    # Input is opened first so a missing input never truncates the output.
    with open(opts.input_file, "rb") as src:
        with open(opts.output_file, "wb") as dst:
            if opts.command is Command.ENCRYPT:
                ctx.session.encrypt_file(src, dst, ctx.password)
            else:
                ctx.session.decrypt_file(src, dst, ctx.password)
    print(
        f"Input file {opts.input_file} was {verb} successfully into output file {opts.output_file}.",
        file=out,
    )


def _run_checksum(ctx: AppContext, out: TextIO) -> None:
    opts = ctx.options
    with open(opts.input_file, "rb") as src:
        checksum = ctx.session.calculate_checksum(src)
    print(f"Checksum of input file {opts.input_file}: {checksum}", file=out)


def run(ctx: AppContext, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    if ctx.options.command is Command.CHECKSUM:
        _run_checksum(ctx, out)
    else:
        _run_cipher(ctx, out)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    try:
        options = parse_options(argv)
        ctx = build_context(options)
        configure_logging(ctx.log_level)
        run(ctx)
    except (CryptoGuardError, OSError) as exc:
        logger.debug("command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return exit_code_for(exc)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
