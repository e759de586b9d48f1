"""Pydantic configuration models with code-baked defaults.

The rewrite tables are compiled-in: the deployed wrapper never reads them
from the environment or from ``dismwrap.toml``.  Tests build their own
:class:`RewriteConfig` instances to substitute tables.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class QueryFlags(BaseModel):
    """Flags that together identify ``dism /online /english /get-features``.

    ``online`` and ``english`` match whole arguments only.  ``get_features``
    also matches as a substring so attached sub-options are tolerated.
    """

    model_config = {"frozen": True}

    online: tuple[str, ...] = ("/online", "-online")
    english: tuple[str, ...] = ("/english", "-english")
    get_features: tuple[str, ...] = ("/get-features", "-get-features")


class RewriteConfig(BaseModel):
    """Deprecated-feature tables, output relabeling pair, and I/O limits.

    Attributes:
        deprecated_feature: Display name of the feature being retired.
        deprecated_patterns: Lowercase spellings matched by substring.
        replacement_features: Ordered tokens substituted for each match.
        output_old_token: Literal rewritten in feature-query output.
        output_new_token: Literal emitted in its place.
        max_command_length: Capacity in UTF-16 code units, terminator included.
        read_chunk_size: Upper bound on bytes read from a pipe per chunk.
    """

    model_config = {"frozen": True}

    deprecated_feature: str = "IIS-LegacySnapIn"
    deprecated_patterns: tuple[str, ...] = (
        "/featurename:iis-legacysnapin",
        "-featurename:iis-legacysnapin",
        "featurename:iis-legacysnapin",
    )
    replacement_features: tuple[str, ...] = (
        "/featurename:IIS-ManagementScriptingTools",
        "/featurename:IIS-ManagementService",
    )
    output_old_token: str = "IIS-ManagementScriptingTools"
    output_new_token: str = "IIS-LegacySnapIn"
    query_flags: QueryFlags = Field(default_factory=QueryFlags)
    max_command_length: int = Field(default=32767, gt=1)
    read_chunk_size: int = Field(default=16384, gt=0)

    @model_validator(mode="after")
    def _check_tables(self) -> RewriteConfig:
        if not self.replacement_features:
            msg = "replacement_features must contain at least one token"
            raise ValueError(msg)
        if any(p != p.lower() for p in self.deprecated_patterns):
            msg = "deprecated_patterns are compared case-folded and must be lowercase"
            raise ValueError(msg)
        return self


DEFAULT_REWRITE_CONFIG = RewriteConfig()
