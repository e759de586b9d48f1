"""Tests for command-line quoting, building, and tokenizing."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dismwrap.config.models import RewriteConfig
from dismwrap.domain.cmdline import (
    CommandLineBuilder,
    CommandLineTooLongError,
    MissingArgumentError,
    needs_quoting,
    quote_argument,
    split_command_line,
    utf16_length,
)

REPLACEMENT = [
    "/featurename:IIS-ManagementScriptingTools",
    "/featurename:IIS-ManagementService",
]


@pytest.fixture
def builder() -> CommandLineBuilder:
    return CommandLineBuilder("dism-origin.exe")


class TestQuoteArgument:
    def test_plain_copied_verbatim(self) -> None:
        assert quote_argument("/online") == "/online"

    def test_space_is_wrapped(self) -> None:
        assert quote_argument("C:\\Program Files\\x") == '"C:\\Program Files\\x"'

    def test_embedded_quotes_escaped(self) -> None:
        assert quote_argument('He said "hi"') == '"He said \\"hi\\""'

    def test_quote_without_space(self) -> None:
        assert quote_argument('a"b') == '"a\\"b"'

    def test_tab_not_quoted(self) -> None:
        assert quote_argument("a\tb") == "a\tb"

    def test_needs_quoting(self) -> None:
        assert needs_quoting("a b")
        assert needs_quoting('"')
        assert not needs_quoting("/featurename:x")


class TestSplitCommandLine:
    def test_simple(self) -> None:
        assert split_command_line("dism /online /english") == ["dism", "/online", "/english"]

    def test_quoted_with_escapes(self) -> None:
        assert split_command_line('dism "He said \\"hi\\""') == ["dism", 'He said "hi"']

    def test_collapses_repeated_whitespace(self) -> None:
        assert split_command_line("  a \t  b  ") == ["a", "b"]

    def test_backslashes_literal(self) -> None:
        assert split_command_line("C:\\Windows\\dism.exe /x") == ["C:\\Windows\\dism.exe", "/x"]

    def test_adjacent_quoted_segments_join(self) -> None:
        assert split_command_line('a"b c"d') == ["ab cd"]

    def test_empty_quotes_yield_empty_token(self) -> None:
        assert split_command_line('a "" b') == ["a", "", "b"]

    def test_empty_input(self) -> None:
        assert split_command_line("") == []


class TestBuildPassthrough:
    def test_no_arguments(self, builder: CommandLineBuilder) -> None:
        assert builder.build_passthrough([]) == "dism-origin.exe"

    def test_copies_arguments(self, builder: CommandLineBuilder) -> None:
        args = ["/online", "/get-features", "/format:table"]
        expected = "dism-origin.exe /online /get-features /format:table"
        assert builder.build_passthrough(args) == expected

    def test_does_not_rewrite_legacy_feature(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_passthrough(["/featurename:IIS-LegacySnapIn"])
        assert cmd == "dism-origin.exe /featurename:IIS-LegacySnapIn"

    def test_quotes_arguments(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_passthrough(["/logpath:C:\\my logs\\dism.log"])
        assert cmd == 'dism-origin.exe "/logpath:C:\\my logs\\dism.log"'

    def test_executable_with_space_is_quoted(self) -> None:
        builder = CommandLineBuilder("C:\\Program Files\\dism.exe")
        assert builder.build_passthrough(["/online"]) == '"C:\\Program Files\\dism.exe" /online'

    def test_missing_argument_raises(self, builder: CommandLineBuilder) -> None:
        with pytest.raises(MissingArgumentError) as excinfo:
            builder.build_passthrough(["/online", None])  # type: ignore[list-item]
        assert excinfo.value.index == 2

    def test_embedded_quote_example(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_passthrough(['He said "hi"'])
        assert cmd == 'dism-origin.exe "He said \\"hi\\""'
        assert split_command_line(cmd)[1:] == ['He said "hi"']


class TestBuildRewritten:
    def test_single_match_in_place(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_rewritten(
            ["/online", "/enable-feature", "/featurename:IIS-LegacySnapIn", "/all"]
        )
        assert cmd == (
            "dism-origin.exe /online /enable-feature "
            "/featurename:IIS-ManagementScriptingTools /featurename:IIS-ManagementService /all"
        )

    def test_each_match_expands_fully(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_rewritten(
            ["/featurename:IIS-LegacySnapIn", "/x", "-FEATURENAME:iis-legacysnapin"]
        )
        assert split_command_line(cmd)[1:] == [*REPLACEMENT, "/x", *REPLACEMENT]

    def test_matched_argument_is_not_quoted_or_copied(self, builder: CommandLineBuilder) -> None:
        cmd = builder.build_rewritten(["x featurename:IIS-LegacySnapIn y"])
        assert cmd == "dism-origin.exe " + " ".join(REPLACEMENT)

    def test_without_matches_equals_passthrough(self, builder: CommandLineBuilder) -> None:
        args = ["/online", "two words", 'q"uote']
        assert builder.build_rewritten(args) == builder.build_passthrough(args)

    def test_custom_replacement_set(self) -> None:
        config = RewriteConfig(replacement_features=("/c", "/a", "/b"))
        builder = CommandLineBuilder("dism", config)
        assert builder.build_rewritten(["/featurename:IIS-LegacySnapIn"]) == "dism /c /a /b"


class TestLengthCeiling:
    def test_fits_exactly(self) -> None:
        # "dism abc" is 8 code units; one more is reserved for the terminator.
        builder = CommandLineBuilder("dism", RewriteConfig(max_command_length=9))
        assert builder.build_passthrough(["abc"]) == "dism abc"

    def test_one_over_fails(self) -> None:
        builder = CommandLineBuilder("dism", RewriteConfig(max_command_length=8))
        with pytest.raises(CommandLineTooLongError) as excinfo:
            builder.build_passthrough(["abc"])
        assert excinfo.value.limit == 8
        assert excinfo.value.length == 8

    def test_rewrite_expansion_counts(self) -> None:
        """The unexpanded argument fits but its expansion does not."""
        config = RewriteConfig(max_command_length=60)
        builder = CommandLineBuilder("dism", config)
        args = ["/featurename:IIS-LegacySnapIn"]
        assert len(builder.build_passthrough(args)) < 60
        with pytest.raises(CommandLineTooLongError):
            builder.build_rewritten(args)

    def test_default_ceiling(self, builder: CommandLineBuilder) -> None:
        with pytest.raises(CommandLineTooLongError):
            builder.build_passthrough(["x" * 32767])

    def test_measures_utf16_code_units(self) -> None:
        assert utf16_length("abc") == 3
        assert utf16_length("\u00e9") == 1
        assert utf16_length("\U0001f600") == 2
        builder = CommandLineBuilder("d", RewriteConfig(max_command_length=5))
        # "d " + 2 code units = 4, plus terminator = 5
        assert builder.build_passthrough(["\U0001f600"]) == "d \U0001f600"
        with pytest.raises(CommandLineTooLongError):
            builder.build_passthrough(["\U0001f600x"])


class TestLossyArguments:
    """Arguments the quoting convention cannot carry through unchanged."""

    def test_empty_argument_is_dropped(self) -> None:
        builder = CommandLineBuilder("dism")
        cmd = builder.build_passthrough(["/a", "", "/b"])
        assert cmd == "dism /a  /b"
        assert split_command_line(cmd) == ["dism", "/a", "/b"]

    def test_tab_without_space_is_split(self) -> None:
        builder = CommandLineBuilder("dism")
        cmd = builder.build_passthrough(["/a\t/b"])
        assert cmd == "dism /a\t/b"
        assert split_command_line(cmd) == ["dism", "/a", "/b"]

    def test_quoted_trailing_backslash_swallows_closing_quote(self) -> None:
        builder = CommandLineBuilder("dism")
        cmd = builder.build_passthrough(["C:\\my dir\\", "/online"])
        assert cmd == 'dism "C:\\my dir\\" /online'
        assert split_command_line(cmd) == ["dism", 'C:\\my dir" /online']


# --- Properties --------------------------------------------------------------

_round_trip_args = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters="\t\x00"),
    min_size=1,
    max_size=20,
).filter(lambda s: not (needs_quoting(s) and s.endswith("\\")))

_legacy_spellings = st.sampled_from(
    [
        "/featurename:iis-legacysnapin",
        "-featurename:iis-legacysnapin",
        "featurename:iis-legacysnapin",
    ]
).flatmap(
    lambda p: st.lists(st.booleans(), min_size=len(p), max_size=len(p)).map(
        lambda flips: "".join(c.upper() if f else c for c, f in zip(p, flips, strict=True))
    )
)

_other_args = st.sampled_from(
    ["/online", "/english", "/enable-feature", "/all", "C:\\mount dir", 'say "hi"', "/x:1"]
)

_tagged_args = st.one_of(
    _legacy_spellings.map(lambda s: (True, s)),
    _other_args.map(lambda s: (False, s)),
)


class TestProperties:
    @given(st.lists(_round_trip_args, max_size=8))
    def test_passthrough_round_trips(self, args: list[str]) -> None:
        cmd = CommandLineBuilder("dism-origin.exe").build_passthrough(args)
        assert split_command_line(cmd) == ["dism-origin.exe", *args]

    @given(st.lists(_tagged_args, max_size=10))
    def test_rewrite_expands_every_match_in_place(self, tagged: list[tuple[bool, str]]) -> None:
        args = [arg for _, arg in tagged]
        expected: list[str] = []
        for matched, arg in tagged:
            expected.extend(REPLACEMENT if matched else [arg])

        cmd = CommandLineBuilder("dism-origin.exe").build_rewritten(args)
        assert split_command_line(cmd) == ["dism-origin.exe", *expected]
