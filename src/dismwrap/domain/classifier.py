"""Argument classification.

Decides, per raw argument, whether it selects the deprecated feature, and
whether the whole invocation is the English feature-list query whose
output gets relabeled.

All comparisons use a transient case-folded copy; arguments themselves are
never normalized.  ``None`` entries never match and never raise.
"""

from __future__ import annotations

from collections.abc import Iterable

from dismwrap.config.models import DEFAULT_REWRITE_CONFIG, RewriteConfig


class ArgumentClassifier:
    """Pure predicates over an argument vector (program name excluded)."""

    def __init__(self, config: RewriteConfig = DEFAULT_REWRITE_CONFIG) -> None:
        self._config = config

    @property
    def config(self) -> RewriteConfig:
        return self._config

    def is_deprecated_feature_argument(self, arg: str | None) -> bool:
        """True if *arg* contains any accepted spelling of the deprecated feature.

        Substring containment is intentional: DISM accepts the switch glued
        to other text, so ``/FeatureName:IIS-LegacySnapIn /All`` passed as a
        single token still matches.
        """
        if arg is None:
            return False
        lowered = arg.lower()
        return any(pattern in lowered for pattern in self._config.deprecated_patterns)

    def count_deprecated_feature_arguments(self, args: Iterable[str | None]) -> int:
        """Number of arguments that select the deprecated feature."""
        return sum(1 for arg in args if self.is_deprecated_feature_argument(arg))

    def is_feature_query_command(self, args: Iterable[str | None]) -> bool:
        """True iff online, English and get-features flags are all present.

        Order and casing are irrelevant.  Each argument satisfies at most one
        flag, checked in the order online, english, get-features.
        """
        flags = self._config.query_flags
        has_online = has_english = has_get_features = False

        for arg in args:
            if arg is None:
                continue
            lowered = arg.lower()
            if lowered in flags.online:
                has_online = True
            elif lowered in flags.english:
                has_english = True
            elif any(flag in lowered for flag in flags.get_features):
                has_get_features = True

        return has_online and has_english and has_get_features
