"""WrapperService: plan and run one intercepted DISM invocation.

Flow: raw args -> classifier flags -> built command line -> process
runner (optionally transforming stdout) -> child exit code.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from dismwrap.config.models import DEFAULT_REWRITE_CONFIG, RewriteConfig
from dismwrap.config.settings import WrapperSettings
from dismwrap.domain.classifier import ArgumentClassifier
from dismwrap.domain.cmdline import (
    CommandLineBuilder,
    CommandLineError,
    CommandLineTooLongError,
    split_command_line,
)
from dismwrap.domain.transform import OutputTransformer
from dismwrap.infrastructure.process import Command, ProcessRunner
from dismwrap.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


def popen_command(command_line: str) -> Command:
    """Shape a flat command line for ``subprocess.Popen`` on this host.

    Windows takes the string as-is.  Elsewhere the child is launched from
    an argv vector, recovered with the same quoting convention.
    """
    if os.name == "nt":
        return command_line
    return split_command_line(command_line)


class WrapperService:
    """Decide how to run DISM for an argument vector, then run it.

    Args:
        settings: Runtime settings (target executable, poll interval, fallback code).
        config: Rewrite tables shared by classifier, builder and transformer.
        runner: Process runner; built from *settings* and *config* when omitted.
    """

    def __init__(
        self,
        settings: WrapperSettings,
        config: RewriteConfig = DEFAULT_REWRITE_CONFIG,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._settings = settings
        self._config = config
        self._classifier = ArgumentClassifier(config)
        self._builder = CommandLineBuilder(settings.target_executable, config, self._classifier)
        self._transformer = OutputTransformer(config)
        self._runner = runner or ProcessRunner(
            read_chunk_size=config.read_chunk_size,
            poll_interval=settings.poll_interval,
        )

    def plan(self, args: Sequence[str]) -> ServiceResult:
        """Classify *args* and build the command line for the real DISM.

        *args* excludes the program name.  On success ``data`` holds
        ``command_line``, ``legacy_count`` and ``intercept``.
        """
        op = "plan"
        legacy_count = self._classifier.count_deprecated_feature_arguments(args)
        intercept = self._classifier.is_feature_query_command(args)
        logger.debug(
            "Classified invocation: %d legacy feature argument(s), intercept=%s",
            legacy_count,
            intercept,
        )

        try:
            if legacy_count > 0:
                command_line = self._builder.build_rewritten(args)
            else:
                command_line = self._builder.build_passthrough(args)
        except CommandLineError as exc:
            detail: dict[str, object] = {"mode": "rewritten" if legacy_count else "passthrough"}
            if isinstance(exc, CommandLineTooLongError):
                detail.update(length=exc.length, limit=exc.limit)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="BUILD_FAILED", message=str(exc), detail=detail),
            )

        logger.debug("Built command line: %s", command_line)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "command_line": command_line,
                "legacy_count": legacy_count,
                "intercept": intercept,
            },
        )

    def execute(self, command_line: str, *, intercept: bool) -> ServiceResult:
        """Spawn the real DISM and relay its output.

        ``data["exit_code"]`` carries the child's status, or the fallback
        code (with a warning) when it could not be retrieved.
        """
        op = "run"
        command = popen_command(command_line)
        executable = self._settings.target_executable
        try:
            if intercept:
                outcome = self._runner.run_intercepted(command, self._transformer)
            else:
                outcome = self._runner.run_inherited(command)
        except OSError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="SPAWN_FAILED",
                    message=f"Could not start {executable}: {exc.strerror or exc}",
                    detail={
                        "executable": executable,
                        "errno": exc.errno,
                        "winerror": getattr(exc, "winerror", None),
                    },
                ),
            )

        warnings: list[str] = []
        exit_code = outcome.exit_code
        if exit_code is None:
            exit_code = self._settings.fallback_exit_code
            msg = f"Failed to get process exit code; using {exit_code}"
            logger.warning(msg)
            warnings.append(msg)

        logger.debug("pid %d exited with code %d", outcome.pid, exit_code)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "exit_code": exit_code,
                "pid": outcome.pid,
                "intercepted": outcome.intercepted,
            },
            warnings=warnings,
        )

    def run(self, args: Sequence[str]) -> ServiceResult:
        """Plan and execute in one step; a failed plan spawns nothing."""
        planned = self.plan(args)
        if not planned.ok:
            return planned
        return self.execute(planned.data["command_line"], intercept=planned.data["intercept"])
