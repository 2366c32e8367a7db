"""Small helper to build the runtime context for one CLI invocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional
import getpass
import logging
import os
import sys

from cryptoguard.core.exceptions import UsageError
from cryptoguard.security.session import GuardedSession, get_session
from .options import Command, ProgramOptions

PASSWORD_ENV = "CRYPTOGUARD_PASSWORD"
LOG_LEVEL_ENV = "CRYPTOGUARD_LOG_LEVEL"


@dataclass
class AppContext:
    """Container for runtime objects the command needs."""

    options: ProgramOptions
    session: GuardedSession
    password: Optional[str]
    log_level: int


def _resolve_log_level(options: ProgramOptions, env: Mapping[str, str]) -> int:
    if options.verbose:
        return logging.DEBUG
    name = env.get(LOG_LEVEL_ENV)
    if not name:
        return logging.WARNING
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise UsageError(f"invalid {LOG_LEVEL_ENV}: {name!r}")
    return level


def _resolve_password(
    options: ProgramOptions,
    env: Mapping[str, str],
    prompt: Callable[[str], str],
    interactive: bool,
) -> Optional[str]:
    if options.command is Command.CHECKSUM:
        return None
    if options.password is not None:
        return options.password
    if PASSWORD_ENV in env:
        return env[PASSWORD_ENV]
    if interactive:
        return prompt("Password: ")
    raise UsageError(
        f"{options.command.value} requires --password (or {PASSWORD_ENV} in the environment)"
    )


def build_context(
    options: ProgramOptions,
    env: Optional[Mapping[str, str]] = None,
    prompt: Callable[[str], str] = getpass.getpass,
    interactive: Optional[bool] = None,
) -> AppContext:
    """
    Resolve configuration for ``options``.

    Password lookup order for encrypt/decrypt:

    - ``--password``
    - ``CRYPTOGUARD_PASSWORD`` environment variable
    - an interactive ``getpass`` prompt when stdin is a terminal

    The log level is DEBUG with ``--verbose``, otherwise taken from
    ``CRYPTOGUARD_LOG_LEVEL`` (a level name), defaulting to WARNING.
    """
    env = os.environ if env is None else env
    if interactive is None:
        interactive = sys.stdin is not None and sys.stdin.isatty()

    return AppContext(
        options=options,
        session=get_session(),
        password=_resolve_password(options, env, prompt, interactive),
        log_level=_resolve_log_level(options, env),
    )
