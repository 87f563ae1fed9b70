"""Helpers shared by the CLI command modules."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable

import click

from storefront.application.dto import Principal
from storefront.application.notifications import DetachedNotifier
from storefront.application.result import Err, Result
from storefront.infrastructure.bootstrap import detached_notifier
from storefront.infrastructure.config import Settings


@dataclass
class AppContext:
    settings: Settings
    _notifier: DetachedNotifier | None = field(default=None, repr=False)

    @property
    def notifier(self) -> DetachedNotifier:
        if self._notifier is None:
            self._notifier = detached_notifier(self.settings)
        return self._notifier

    def close(self) -> None:
        # Let queued confirmations finish before the process exits.
        if self._notifier is not None:
            self._notifier.shutdown(wait=True)


def principal_options(command: Callable) -> Callable:
    """Add --user/--email/--name/--admin and pass a Principal as ``principal``."""

    @click.option("--user", "user_id", required=True, help="Acting user ID.")
    @click.option("--email", default="", help="Acting user's e-mail (for confirmations).")
    @click.option("--name", "first_name", default="", help="Acting user's first name.")
    @click.option("--admin", is_flag=True, default=False, help="Act as an administrator.")
    @functools.wraps(command)
    def wrapper(*args: Any, user_id: str, email: str, first_name: str, admin: bool, **kwargs: Any):
        principal = Principal(user_id=user_id, email=email, first_name=first_name, is_admin=admin)
        return command(*args, principal=principal, **kwargs)

    return wrapper


def unwrap(result: Result) -> Any:
    """Return the Ok value or turn an Err into a ClickException."""
    if isinstance(result, Err):
        raise click.ClickException(f"[{result.status_code}] {result.message}")
    if result.message:
        click.echo(result.message)
    return result.value
