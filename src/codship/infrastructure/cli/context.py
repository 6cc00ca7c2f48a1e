"""Per-invocation CLI state carried on ``click.Context.obj``."""

from __future__ import annotations

import click

from codship.infrastructure.bootstrap import Services, build_services
from codship.infrastructure.config import Settings


class CliContext:
    """Wires services lazily so ``--help`` never touches a store."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._services: Services | None = None

    def services(self) -> Services:
        if self._services is None:
            self._services = build_services(self.settings)
        return self._services


pass_cli = click.make_pass_decorator(CliContext)
