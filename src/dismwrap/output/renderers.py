"""Rich renderers for the diagnostic banner and wrapper failures.

Every renderer returns a plain string; the CLI decides where it goes
(always stderr, so forwarded stdout stays byte-for-byte the child's).
Argument text is wrapped in ``Text`` objects so brackets in DISM
arguments are never parsed as Rich markup.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.text import Text

from dismwrap.output.console import create_console, get_output

if TYPE_CHECKING:
    from dismwrap.config.models import RewriteConfig
    from dismwrap.services.result import ServiceResult

TAG = "[DISM WRAPPER]"


def _tagged(*parts: str | Text) -> Text:
    line = Text(TAG, style="dw.tag")
    line.append(" ")
    for part in parts:
        line.append(part)
    return line


def render_banner(
    argv: Sequence[str],
    plan: ServiceResult,
    config: RewriteConfig,
    *,
    version: str,
) -> str:
    """Render the pre-spawn banner for a successful plan.

    *argv* includes the program name, echoing what the caller typed.
    """
    console = create_console()
    data = plan.data
    legacy_count = data.get("legacy_count", 0)

    console.print(_tagged(f"Version {version} - IIS Legacy SnapIn Interceptor"))
    console.print(_tagged("Detected command: ", Text(" ".join(argv), style="dw.cmd")))

    if legacy_count:
        console.print(
            _tagged(
                f"Detected {legacy_count} occurrence(s) of '",
                Text(config.deprecated_feature, style="dw.feature"),
                "'",
            )
        )
        console.print(
            _tagged(
                f"Replacing with {len(config.replacement_features)} modern IIS management features"
            )
        )
    else:
        console.print(_tagged("No legacy features detected in command line"))

    if data.get("intercept"):
        console.print(_tagged("Output will be intercepted and modified"))
    console.print(_tagged("Executing: ", Text(data.get("command_line", ""), style="dw.cmd")))

    return get_output(console).rstrip("\n")


def render_completion(exit_code: int) -> str:
    """Render the line printed after a non-intercepted run."""
    console = create_console()
    console.print(_tagged(f"Process completed with exit code {exit_code}"))
    return get_output(console).rstrip("\n")


def render_error(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a failed ServiceResult, with error detail when *verbose*."""
    console = create_console()
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="dw.error")
    op = Text(f"  {result.op}", style="dw.op")
    console.print(label, op, Text(" - "), Text(msg), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dw.key"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))

    return get_output(console).rstrip("\n")


def render_warnings(result: ServiceResult) -> str:
    """Render each warning on its own line; empty when there are none."""
    if not result.warnings:
        return ""
    console = create_console()
    for warning in result.warnings:
        console.print(Text("WARNING", style="dw.warning"), Text(f": {warning}"), sep="")
    return get_output(console).rstrip("\n")
