"""Literal token relabeling for captured DISM output.

One fixed literal is swapped for another, scanning left to right with
greedy, non-overlapping matches.  No pattern syntax is involved.

Chunks are transformed independently, so a token split across two pipe
reads passes through unchanged.  Re-applying the transform is a no-op
only when the new token does not contain the old one.
"""

from __future__ import annotations

from typing import AnyStr

from dismwrap.config.models import DEFAULT_REWRITE_CONFIG, RewriteConfig


def replace_token(text: AnyStr, old_token: AnyStr | None, new_token: AnyStr | None) -> AnyStr:
    """Return *text* with every occurrence of *old_token* replaced by *new_token*.

    Empty *text*, a missing token, or an empty *old_token* leave *text*
    unchanged.  Works on ``str`` and ``bytes`` alike.
    """
    if not text or old_token is None or new_token is None or not old_token:
        return text

    out: list[AnyStr] = []
    pos = 0
    while True:
        hit = text.find(old_token, pos)
        if hit < 0:
            break
        out.append(text[pos:hit])
        out.append(new_token)
        pos = hit + len(old_token)

    if not out:
        return text
    out.append(text[pos:])
    return text[:0].join(out)


class OutputTransformer:
    """Relabel the feature name in raw stdout chunks.

    Tokens are encoded once at construction; *encoding* must be one the
    child's console output is compatible with for these ASCII names.
    """

    def __init__(
        self,
        config: RewriteConfig = DEFAULT_REWRITE_CONFIG,
        *,
        encoding: str = "ascii",
    ) -> None:
        self._old = config.output_old_token.encode(encoding)
        self._new = config.output_new_token.encode(encoding)

    def __call__(self, chunk: bytes) -> bytes:
        return replace_token(chunk, self._old, self._new)
