"""Command-line building and tokenizing.

The real DISM receives one flat command line: executable, then each
argument preceded by a single space.  Arguments are re-quoted with one
convention, and :func:`split_command_line` reverses exactly that
convention:

- no space and no double quote: copied verbatim
- otherwise: wrapped in double quotes, each embedded ``"`` written ``\\"``

Some arguments do not survive the trip:

- Backslashes are never doubled, so an argument that needs quoting and
  ends in a backslash loses its closing quote to the escape.
- An empty argument is copied as nothing and disappears between the
  separating spaces.
- Only spaces trigger quoting, so an argument holding a tab but no space
  is split at the tab.

INVARIANT: a built command line is either complete or not produced at all.
Exceeding capacity raises; nothing is truncated.
"""

from __future__ import annotations

from collections.abc import Sequence

from dismwrap.config.models import DEFAULT_REWRITE_CONFIG, RewriteConfig
from dismwrap.domain.classifier import ArgumentClassifier


class CommandLineError(ValueError):
    """A command line could not be built."""


class CommandLineTooLongError(CommandLineError):
    """Appending would exceed the platform command-line capacity."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(
            f"Command line needs {length} UTF-16 code units; at most {limit - 1} fit"
        )


class MissingArgumentError(CommandLineError):
    """An argument slot held no value."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Argument {index} is missing")


def utf16_length(text: str) -> int:
    """Length of *text* in UTF-16 code units."""
    return len(text.encode("utf-16-le", errors="surrogatepass")) // 2


def needs_quoting(arg: str) -> bool:
    return " " in arg or '"' in arg


def quote_argument(arg: str) -> str:
    """Quote *arg* for the target's command-line parser."""
    if not needs_quoting(arg):
        return arg
    return '"' + arg.replace('"', '\\"') + '"'


def split_command_line(command_line: str) -> list[str]:
    """Tokenize *command_line* by the convention :func:`quote_argument` writes.

    Whitespace outside quotes separates tokens, ``"`` toggles quoting,
    ``\\"`` is a literal quote, and any other backslash is literal.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_token = False
    in_quotes = False
    i = 0
    n = len(command_line)

    while i < n:
        ch = command_line[i]
        if ch == "\\" and i + 1 < n and command_line[i + 1] == '"':
            current.append('"')
            in_token = True
            i += 2
            continue
        if ch == '"':
            in_quotes = not in_quotes
            in_token = True
        elif ch in " \t" and not in_quotes:
            if in_token:
                tokens.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(ch)
            in_token = True
        i += 1

    if in_token:
        tokens.append("".join(current))
    return tokens


class _CommandLineBuffer:
    """Growable command line with an explicit capacity check on each append."""

    def __init__(self, limit: int) -> None:
        # One code unit is reserved for the terminating NUL.
        self._limit = limit
        self._parts: list[str] = []
        self._length = 0

    def append(self, text: str) -> None:
        new_length = self._length + utf16_length(text)
        if new_length > self._limit - 1:
            raise CommandLineTooLongError(new_length, self._limit)
        self._parts.append(text)
        self._length = new_length

    def getvalue(self) -> str:
        return "".join(self._parts)


class CommandLineBuilder:
    """Build the command line handed to the real DISM executable.

    Args:
        executable: Name or path of the real DISM binary.
        config: Rewrite tables and the capacity limit.
        classifier: Predicate source; built from *config* when omitted.
    """

    def __init__(
        self,
        executable: str,
        config: RewriteConfig = DEFAULT_REWRITE_CONFIG,
        classifier: ArgumentClassifier | None = None,
    ) -> None:
        self._executable = executable
        self._config = config
        self._classifier = classifier or ArgumentClassifier(config)

    def build_passthrough(self, args: Sequence[str]) -> str:
        """Executable followed by every argument, re-quoted and unchanged."""
        return self._build(args, rewrite=False)

    def build_rewritten(self, args: Sequence[str]) -> str:
        """Like :meth:`build_passthrough`, expanding deprecated-feature arguments.

        Each matching argument is replaced in place by the full replacement
        set, space-joined in declared order and not quoted.  Multiple matches
        each expand independently.
        """
        return self._build(args, rewrite=True)

    def _build(self, args: Sequence[str], *, rewrite: bool) -> str:
        buf = _CommandLineBuffer(self._config.max_command_length)
        buf.append(quote_argument(self._executable))
        replacement = " ".join(self._config.replacement_features)

        for index, arg in enumerate(args, start=1):
            if arg is None:
                raise MissingArgumentError(index)
            buf.append(" ")
            if rewrite and self._classifier.is_deprecated_feature_argument(arg):
                buf.append(replacement)
            else:
                buf.append(quote_argument(arg))

        return buf.getvalue()
