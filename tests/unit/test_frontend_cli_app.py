"""Unit tests for the CryptoGuard command line (options, exit codes, end-to-end runs)."""

from pathlib import Path

import pytest

from cryptoguard.core.exceptions import (
    CipherFinalizeError,
    PreconditionError,
    StreamIOError,
    UsageError,
)
from cryptoguard.frontend.cli import app
from cryptoguard.frontend.cli.context import PASSWORD_ENV
from cryptoguard.frontend.cli.options import Command, parse_options
from cryptoguard.security.session import encrypt_bytes

SHA256_HELLO_OPENSSL = "abec80fdd708340513c54b7c6522cd3c9318a5decce7305e48fb1b51da6a4899"


# --- Fixtures ---

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(PASSWORD_ENV, raising=False)
    monkeypatch.delenv("CRYPTOGUARD_LOG_LEVEL", raising=False)


@pytest.fixture
def plain_file(tmp_path) -> Path:
    path = tmp_path / "plain.txt"
    path.write_bytes(b"Hello OpenSSL crypto world!")
    return path


# --- Option parsing ---

def test_parse_encrypt_options():
    opts = parse_options(["-c", "encrypt", "-i", "a.txt", "-o", "b.enc", "-p", "1234"])
    assert opts.command is Command.ENCRYPT
    assert opts.input_file == Path("a.txt")
    assert opts.output_file == Path("b.enc")
    assert opts.password == "1234"
    assert opts.verbose is False


def test_parse_checksum_options():
    opts = parse_options(["--command", "checksum", "--input", "a.txt", "-v"])
    assert opts.command is Command.CHECKSUM
    assert opts.output_file is None
    assert opts.password is None
    assert opts.verbose is True


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["-c", "encrypt"],
        ["-i", "a.txt"],
        ["-c", "compress", "-i", "a.txt"],
        ["-c", "encrypt", "-i", "a.txt", "-p", "1234"],
        ["-c", "decrypt", "-i", "a.txt", "-p", "1234"],
        ["-c", "checksum", "-i", "a.txt", "-o", "b.txt"],
        ["-c", "checksum", "-i", "a.txt", "-p", "1234"],
        ["-c", "encrypt", "-i", "a.txt", "-o", "a.txt", "-p", "1234"],
    ],
)
def test_parse_invalid_options(argv):
    with pytest.raises(UsageError):
        parse_options(argv)


def test_parse_rejects_same_file_through_different_paths(plain_file):
    alias = plain_file.parent / "." / plain_file.name
    with pytest.raises(UsageError, match="different files"):
        parse_options(["-c", "decrypt", "-i", str(plain_file), "-o", str(alias), "-p", "x"])


# --- Exit codes ---

@pytest.mark.parametrize(
    "exc, code",
    [
        (UsageError("x"), app.EXIT_USAGE),
        (PreconditionError("x"), app.EXIT_PRECONDITION),
        (CipherFinalizeError("x"), app.EXIT_CRYPTO),
        (StreamIOError("x"), app.EXIT_IO),
        (FileNotFoundError("x"), app.EXIT_IO),
        (RuntimeError("x"), app.EXIT_FAILURE),
    ],
)
def test_exit_code_for(exc, code):
    assert app.exit_code_for(exc) == code


# --- End to end ---

def test_main_encrypt_decrypt_checksum(plain_file, tmp_path, capsys):
    enc = tmp_path / "plain.enc"
    dec = tmp_path / "plain.dec"

    assert app.main(["-c", "encrypt", "-i", str(plain_file), "-o", str(enc), "-p", "1234"]) == app.EXIT_OK
    assert "encrypted successfully" in capsys.readouterr().out
    assert enc.read_bytes() != plain_file.read_bytes()

    assert app.main(["-c", "decrypt", "-i", str(enc), "-o", str(dec), "-p", "1234"]) == app.EXIT_OK
    assert "decrypted successfully" in capsys.readouterr().out
    assert dec.read_bytes() == plain_file.read_bytes()

    assert app.main(["-c", "checksum", "-i", str(dec)]) == app.EXIT_OK
    assert SHA256_HELLO_OPENSSL in capsys.readouterr().out


def test_main_password_from_environment(plain_file, tmp_path, monkeypatch):
    monkeypatch.setenv(PASSWORD_ENV, "env-secret")
    enc = tmp_path / "env.enc"
    dec = tmp_path / "env.dec"

    assert app.main(["-c", "encrypt", "-i", str(plain_file), "-o", str(enc)]) == app.EXIT_OK
    assert app.main(["-c", "decrypt", "-i", str(enc), "-o", str(dec), "-p", "env-secret"]) == app.EXIT_OK
    assert dec.read_bytes() == plain_file.read_bytes()


def test_main_wrong_password(plain_file, tmp_path, capsys):
    enc = tmp_path / "plain.enc"
    dec = tmp_path / "plain.dec"
    app.main(["-c", "encrypt", "-i", str(plain_file), "-o", str(enc), "-p", "1234"])

    code = app.main(["-c", "decrypt", "-i", str(enc), "-o", str(dec), "-p", "12345"])

    assert code == app.EXIT_CRYPTO
    assert "Error: cipher finalize error" in capsys.readouterr().err


def test_main_missing_input(tmp_path, capsys):
    code = app.main(["-c", "checksum", "-i", str(tmp_path / "nope.txt")])
    assert code == app.EXIT_IO
    assert capsys.readouterr().err.startswith("Error:")


def test_main_missing_input_does_not_create_output(tmp_path):
    out = tmp_path / "out.enc"
    code = app.main(["-c", "encrypt", "-i", str(tmp_path / "nope.txt"), "-o", str(out), "-p", "x"])
    assert code == app.EXIT_IO
    assert not out.exists()


def test_main_usage_error(plain_file, capsys):
    code = app.main(["-c", "checksum", "-i", str(plain_file), "-p", "1234"])
    assert code == app.EXIT_USAGE
    assert "checksum does not accept" in capsys.readouterr().err


def test_main_non_utf8_password(plain_file, tmp_path):
    """A surrogate-escaped argv password encrypts with its raw bytes and round-trips."""
    enc = tmp_path / "latin1.enc"
    dec = tmp_path / "latin1.dec"

    code = app.main(["-c", "encrypt", "-i", str(plain_file), "-o", str(enc), "-p", "\udcff"])

    assert code == app.EXIT_OK
    assert enc.read_bytes() == encrypt_bytes(plain_file.read_bytes(), b"\xff")
    assert app.main(["-c", "decrypt", "-i", str(enc), "-o", str(dec), "-p", "\udcff"]) == app.EXIT_OK
    assert dec.read_bytes() == plain_file.read_bytes()
