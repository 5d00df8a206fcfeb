"""Tests for the formatting chain: tiers, degradation, builtin printer."""

import pytest

from expandview.diagnostics import Diagnostics, NoticeKind
from expandview.errors import FormatterUnavailable
from expandview.formatting import (
    Formatter,
    FormatTier,
    FormattingChain,
    build_formatter,
    compose_source,
    default_formatters,
)
from expandview.formatting.backends.builtin import BuiltinFormatter, reprint
from expandview.formatting.backends.raw import RawFormatter
from expandview.formatting.backends.rustfmt import RustfmtFormatter
from expandview.select import ItemPath, select
from expandview.unit import build_unit


class StubFormatter(Formatter):
    """Formatter double that records calls and fails on demand."""

    def __init__(self, name, tier, fail=False, output=None):
        self.name = name
        self.tier = tier
        self.fail = fail
        self.output = output
        self.calls = 0

    async def format(self, source):
        self.calls += 1
        if self.fail:
            raise FormatterUnavailable(self.name, "stub failure")
        return self.output if self.output is not None else source.upper()


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────


class TestFactory:
    def test_build_each_formatter(self):
        assert isinstance(build_formatter("rustfmt"), RustfmtFormatter)
        assert isinstance(build_formatter("builtin"), BuiltinFormatter)
        assert isinstance(build_formatter("raw"), RawFormatter)

    def test_unknown_formatter_raises(self):
        with pytest.raises(ValueError, match="Unknown formatter"):
            build_formatter("prettier")

    def test_default_chain_order(self):
        assert [f.tier for f in default_formatters()] == [FormatTier.FULL, FormatTier.FALLBACK, FormatTier.RAW]
        assert [f.name for f in default_formatters(use_rustfmt=False)] == ["builtin", "raw"]


# ─────────────────────────────────────────────────────────────────────────────
# Chain behaviour
# ─────────────────────────────────────────────────────────────────────────────


class TestChain:
    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        full = StubFormatter("full", FormatTier.FULL)
        fallback = StubFormatter("fallback", FormatTier.FALLBACK)
        chain = FormattingChain([full, fallback])
        rendered = await chain.render_text("fn f() {}")
        assert rendered.tier is FormatTier.FULL
        assert rendered.text == "FN F() {}"
        assert not rendered.degraded
        assert fallback.calls == 0
        assert chain.diagnostics.notices == []

    @pytest.mark.asyncio
    async def test_failure_degrades_with_notice(self):
        full = StubFormatter("full", FormatTier.FULL, fail=True)
        chain = FormattingChain([full, StubFormatter("fallback", FormatTier.FALLBACK)])
        rendered = await chain.render_text("fn f() {}")
        assert rendered.tier is FormatTier.FALLBACK
        assert rendered.formatter == "fallback"
        notices = chain.diagnostics.of_kind(NoticeKind.FORMATTER_DEGRADED)
        assert len(notices) == 1
        assert notices[0].details["formatter"] == "full"
        assert notices[0].details["reason"] == "stub failure"

    @pytest.mark.asyncio
    async def test_failed_formatter_is_never_retried(self):
        full = StubFormatter("full", FormatTier.FULL, fail=True)
        chain = FormattingChain([full, StubFormatter("fallback", FormatTier.FALLBACK)])
        await chain.render_text("fn a() {}")
        full.fail = False
        rendered = await chain.render_text("fn b() {}")
        assert full.calls == 1
        assert rendered.tier is FormatTier.FALLBACK
        assert chain.disabled == frozenset({"full"})

    @pytest.mark.asyncio
    async def test_unstable_grammar_skips_full_tier(self):
        full = StubFormatter("full", FormatTier.FULL)
        chain = FormattingChain([full, StubFormatter("fallback", FormatTier.FALLBACK)])
        rendered = await chain.render_text("fn f() { box 1 }", stable_grammar=False)
        assert rendered.tier is FormatTier.FALLBACK
        assert full.calls == 0
        assert chain.diagnostics.has(NoticeKind.FORMATTER_DEGRADED)
        # Skipping for grammar reasons does not disable the formatter.
        again = await chain.render_text("fn g() {}")
        assert again.tier is FormatTier.FULL

    @pytest.mark.asyncio
    async def test_all_fail_returns_raw(self):
        chain = FormattingChain([StubFormatter("only", FormatTier.FULL, fail=True)])
        rendered = await chain.render_text("fn   f() {}")
        assert rendered.tier is FormatTier.RAW
        assert rendered.text == "fn   f() {}"
        assert len(chain.diagnostics.of_kind(NoticeKind.FORMATTER_DEGRADED)) == 2

    @pytest.mark.asyncio
    async def test_shared_diagnostics(self):
        diagnostics = Diagnostics()
        chain = FormattingChain([StubFormatter("x", FormatTier.FULL, fail=True), RawFormatter()], diagnostics)
        await chain.render_text("fn f() {}")
        assert diagnostics.kinds == [NoticeKind.FORMATTER_DEGRADED]

    @pytest.mark.asyncio
    async def test_render_uses_unit_grammar(self):
        unit = build_unit("fn f() -> Box<u8> { box 1 }")
        full = StubFormatter("full", FormatTier.FULL)
        chain = FormattingChain([full, RawFormatter()])
        rendered = await chain.render(unit, select(unit, ItemPath.parse("")))
        assert rendered.tier is FormatTier.RAW
        assert full.calls == 0

    @pytest.mark.asyncio
    async def test_missing_rustfmt_degrades(self, monkeypatch):
        monkeypatch.setenv("RUSTFMT", "")
        chain = FormattingChain(default_formatters())
        rendered = await chain.render_text("fn f() { 1 }")
        assert rendered.tier is FormatTier.FALLBACK
        notice = chain.diagnostics.of_kind(NoticeKind.FORMATTER_DEGRADED)[0]
        assert notice.details["formatter"] == "rustfmt"
        assert "rustfmt not found" in notice.message


class TestComposeSource:
    def test_empty_path_is_whole_text(self, expanded_crate):
        unit = build_unit(expanded_crate)
        assert compose_source(unit, select(unit, ItemPath.parse(""))) == expanded_crate

    def test_single_item(self, expanded_crate):
        unit = build_unit(expanded_crate)
        assert compose_source(unit, select(unit, ItemPath.parse("foo"))) == "pub fn foo() -> u32 { 2 }\n"

    def test_ambiguous_items_are_separated(self):
        unit = build_unit("fn f() { 1 }\nfn f() { 2 }")
        text = compose_source(unit, select(unit, ItemPath.parse("f")))
        assert text == "// ---- f (1 of 2) ----\nfn f() { 1 }\n\n// ---- f (2 of 2) ----\nfn f() { 2 }\n"


# ─────────────────────────────────────────────────────────────────────────────
# Builtin printer
# ─────────────────────────────────────────────────────────────────────────────


class TestBuiltinPrinter:
    def test_layout(self):
        out = reprint("mod m { pub fn f() -> u32 { 1 } pub struct S { x: i32, y: i32 } }")
        assert out == (
            "mod m {\n"
            "    pub fn f() -> u32 {\n"
            "        1\n"
            "    }\n"
            "\n"
            "    pub struct S {\n"
            "        x: i32,\n"
            "        y: i32\n"
            "    }\n"
            "}\n"
        )

    def test_use_runs_stay_together(self):
        out = reprint("use a::b; use c::{d, e}; fn f() {}")
        assert out == "use a::b;\nuse c::{d, e};\n\nfn f() {}\n"

    def test_attributes_on_own_line(self):
        out = reprint("#[inline] fn f() {}")
        assert out == "#[inline]\nfn f() {}\n"

    def test_glued_tokens_stay_glued(self):
        out = reprint("fn f(){let v=a::b::<u8>(x,y);}")
        assert "a::b::<u8>(x,y)" in out
        assert "let v=a" in out

    def test_reparses_to_same_items(self, expanded_crate):
        before = build_unit(expanded_crate)
        after = build_unit(reprint(expanded_crate))
        assert after.kinds() == before.kinds()
        assert [i.name for i in after.walk()] == [i.name for i in before.walk()]
        assert after.attrs == before.attrs

    def test_idempotent(self, expanded_crate):
        once = reprint(expanded_crate)
        assert reprint(once) == once

    def test_keeps_comments(self):
        out = reprint("fn f() {} // trailing\n// own line\nfn g() {}")
        assert out.startswith("fn f() {} // trailing\n")
        assert "\n// own line\nfn g() {}" in out

    @pytest.mark.asyncio
    async def test_formatter_wraps_malformed_input(self):
        with pytest.raises(FormatterUnavailable):
            await BuiltinFormatter().format("fn f() {")

    @pytest.mark.asyncio
    async def test_internal_syntax_is_printed(self):
        text = await BuiltinFormatter().format("fn f() -> Box<u8> { box 1 }")
        assert "box 1" in text
        assert build_unit(text).items[0].internal_syntax == ("box expression",)


# ─────────────────────────────────────────────────────────────────────────────
# rustfmt (full tier)
# ─────────────────────────────────────────────────────────────────────────────


@pytest.mark.rustfmt
class TestRustfmt:
    @pytest.mark.asyncio
    async def test_round_trip_preserves_items(self, expanded_crate):
        before = build_unit(expanded_crate)
        formatted = await RustfmtFormatter().format(expanded_crate)
        after = build_unit(formatted)
        assert after.kinds() == before.kinds()
        assert len(list(after.walk())) == len(list(before.walk()))

    @pytest.mark.asyncio
    async def test_idempotent(self, expanded_crate):
        formatter = RustfmtFormatter()
        once = await formatter.format(expanded_crate)
        twice = await formatter.format(once)
        assert twice == once

    @pytest.mark.asyncio
    async def test_dollar_crate_survives(self):
        text = await RustfmtFormatter().format("fn f() { $crate::io::_print(x); }")
        assert "$crate::io::_print(x)" in text
        assert "Ξcrate" not in text

    @pytest.mark.asyncio
    async def test_rejected_input_is_unavailable(self):
        with pytest.raises(FormatterUnavailable, match="edition"):
            await RustfmtFormatter().format("fn f( {")

    @pytest.mark.asyncio
    async def test_chain_reports_full_tier(self, expanded_crate):
        chain = FormattingChain()
        rendered = await chain.render_text(expanded_crate)
        assert rendered.tier is FormatTier.FULL
        assert rendered.formatter == "rustfmt"


class TestRustfmtUnavailable:
    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path):
        formatter = RustfmtFormatter(binary=str(tmp_path / "no-such-rustfmt"))
        with pytest.raises(FormatterUnavailable, match="cannot run"):
            await formatter.format("fn f() {}")

    @pytest.mark.asyncio
    async def test_disabled_by_env(self, monkeypatch):
        monkeypatch.setenv("RUSTFMT", "")
        with pytest.raises(FormatterUnavailable, match="not found"):
            await RustfmtFormatter().format("fn f() {}")
