"""Root CLI for dismwrap, installed in place of ``dism.exe``.

The wrapper owns no flags: every argument belongs to DISM.  :func:`main`
therefore prefixes ``--`` so Click treats the whole argv as positional,
including DISM's own ``/?`` and any literal ``--``.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from dismwrap import __version__
from dismwrap.config.logging import configure_logging
from dismwrap.config.models import DEFAULT_REWRITE_CONFIG
from dismwrap.config.settings import WrapperSettings
from dismwrap.output.renderers import (
    render_banner,
    render_completion,
    render_error,
    render_warnings,
)
from dismwrap.services.result import ServiceResult
from dismwrap.services.wrapper import WrapperService


def _fail(result: ServiceResult, settings: WrapperSettings) -> NoReturn:
    """Report a wrapper failure on stderr and exit with the fallback code."""
    click.echo(render_error(result, verbose=settings.verbose), err=True)
    raise SystemExit(settings.fallback_exit_code)


@click.command(
    add_help_option=False,
    context_settings={"ignore_unknown_options": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx: click.Context, args: tuple[str, ...]) -> None:
    """Forward a DISM invocation, retiring the IIS-LegacySnapIn feature."""
    settings = WrapperSettings.load()
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    service = WrapperService(settings, DEFAULT_REWRITE_CONFIG)
    planned = service.plan(args)
    if not planned.ok:
        _fail(planned, settings)

    if settings.banner:
        argv = [ctx.info_name or "dism", *args]
        click.echo(
            render_banner(argv, planned, DEFAULT_REWRITE_CONFIG, version=__version__),
            err=True,
        )

    result = service.execute(
        planned.data["command_line"],
        intercept=planned.data["intercept"],
    )
    if not result.ok:
        _fail(result, settings)

    warnings = render_warnings(result)
    if warnings:
        click.echo(warnings, err=True)

    exit_code: int = result.data["exit_code"]
    if settings.banner and not result.data["intercepted"]:
        click.echo(render_completion(exit_code), err=True)
    raise SystemExit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli.main(
        args=["--", *sys.argv[1:]],
        prog_name="dism",
        windows_expand_args=False,
    )
