"""Command-line option parsing and validation for CryptoGuard."""

from __future__ import annotations

import argparse
import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from cryptoguard.core.exceptions import UsageError


class Command(enum.Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    CHECKSUM = "checksum"


@dataclass
class ProgramOptions:
    """Validated options for one invocation."""

    command: Command
    input_file: Path
    output_file: Optional[Path] = None
    password: Optional[str] = None
    verbose: bool = False


class _Parser(argparse.ArgumentParser):
    # argparse exits the process on bad input; surface it as UsageError instead.
    def error(self, message: str):
        raise UsageError(f"{message}\n{self.format_usage().strip()}")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="cryptoguard",
        description="Encrypt, decrypt or checksum a file with a passphrase.",
    )
    parser.add_argument(
        "-c", "--command",
        required=True,
        choices=[c.value for c in Command],
        help="encrypt, decrypt or checksum command",
    )
    parser.add_argument("-i", "--input", required=True, help="path to the input file")
    parser.add_argument("-o", "--output", default=None, help="path to the file where the result will be saved")
    parser.add_argument("-p", "--password", default=None, help="password for encryption and decryption")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def _same_path(a: Path, b: Path) -> bool:
    if a.exists() and b.exists():
        return os.path.samefile(a, b)
    return a.resolve() == b.resolve()


def parse_options(argv: Optional[Sequence[str]] = None) -> ProgramOptions:
    """
    Parse and validate ``argv``.

    encrypt/decrypt need an output path distinct from the input; the
    password may come later from the environment or a prompt. checksum
    takes neither an output nor a password.
    """
    args = build_parser().parse_args(argv)
    command = Command(args.command)
    input_file = Path(args.input)
    output_file = Path(args.output) if args.output is not None else None

    if command is Command.CHECKSUM:
        if output_file is not None or args.password is not None:
            raise UsageError("checksum does not accept --output or --password")
    else:
        if output_file is None:
            raise UsageError(f"{command.value} requires --output")
        if _same_path(input_file, output_file):
            raise UsageError("input and output must be different files")

    return ProgramOptions(
        command=command,
        input_file=input_file,
        output_file=output_file,
        password=args.password,
        verbose=args.verbose,
    )
