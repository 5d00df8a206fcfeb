"""Tests for item path parsing and selection."""

import pytest

from expandview.errors import InvalidPath
from expandview.select import ItemPath, items_to_render, select
from expandview.unit import ItemKind, build_unit


@pytest.fixture
def unit(expanded_crate):
    return build_unit(expanded_crate)


class TestItemPathParse:
    def test_empty_queries(self):
        assert ItemPath.parse(None).is_empty
        assert ItemPath.parse("").is_empty
        assert ItemPath.parse("  ").is_empty
        assert ItemPath.parse("::").is_empty

    def test_separators(self):
        assert str(ItemPath.parse("outer::foo")) == "outer::foo"
        assert str(ItemPath.parse("outer.foo")) == "outer::foo"
        assert str(ItemPath.parse("::outer::foo")) == "outer::foo"
        assert len(ItemPath.parse("a::b.c")) == 3

    def test_positional_marker(self):
        path = ItemPath.parse("outer::{impl#1}")
        seg = path.segments[1]
        assert seg.is_positional
        assert (seg.tag, seg.index) == ("impl", 1)
        assert str(path) == "outer::{impl#1}"

    def test_raw_identifier_segment(self):
        assert str(ItemPath.parse("r#type")) == "r#type"

    @pytest.mark.parametrize("query", ["outer::", "a b", "{bogus#0}", "{impl#x}", "foo<T>", "a::::b"])
    def test_invalid(self, query):
        with pytest.raises(InvalidPath):
            ItemPath.parse(query)

    def test_invalid_path_is_value_error(self):
        with pytest.raises(ValueError):
            ItemPath.parse("1abc")


class TestSelect:
    def test_empty_path_selects_everything(self, unit):
        selection = select(unit, ItemPath.parse(""))
        assert selection.items == unit.items

    def test_top_level_match_preserves_span(self, unit):
        selection = select(unit, ItemPath.parse("foo"))
        assert len(selection) == 1
        assert unit.source_of(selection.items[0]) == "pub fn foo() -> u32 { 2 }"

    def test_nested_name_does_not_leak(self, unit):
        nested = select(unit, ItemPath.parse("outer::foo"))
        top = select(unit, ItemPath.parse("foo"))
        assert len(nested) == 1 and len(top) == 1
        assert unit.source_of(nested.items[0]) == "pub fn foo() -> u32 { 1 }"
        assert nested.items[0] is not top.items[0]

    def test_positional_impl(self, unit):
        first = select(unit, ItemPath.parse("outer::{impl#0}::new"))
        assert [i.name for i in first] == ["new"]
        second = select(unit, ItemPath.parse("outer::{impl#1}"))
        assert "Default for Point" in unit.source_of(second.items[0])

    def test_positional_counts_per_container(self, unit):
        top_impl = select(unit, ItemPath.parse("{impl#0}"))
        assert "Debug for outer::Point" in unit.source_of(top_impl.items[0])
        assert select(unit, ItemPath.parse("{impl#1}")).is_empty

    def test_anonymous_any_kind(self, unit):
        # Anonymous top-level items: the prelude use, the Debug impl, const _
        anon = select(unit, ItemPath.parse("{anon#2}"))
        assert anon.items[0].kind is ItemKind.CONST

    def test_enters_traits(self, unit):
        assert [i.name for i in select(unit, ItemPath.parse("Shape::area"))] == ["area"]

    def test_does_not_enter_functions(self, unit):
        assert select(unit, ItemPath.parse("foo::anything")).is_empty

    def test_case_sensitive_and_exact(self, unit):
        assert select(unit, ItemPath.parse("outer::point")).is_empty
        assert select(unit, ItemPath.parse("out")).is_empty

    def test_no_match(self, unit):
        assert select(unit, ItemPath.parse("missing")).is_empty

    def test_ambiguous_keeps_all_in_order(self):
        text = "mod a { fn f() { 1 } }\nmod a { fn f() { 2 } }\nfn f() {}"
        unit = build_unit(text)
        selection = select(unit, ItemPath.parse("a::f"))
        assert selection.is_ambiguous
        assert [unit.source_of(i) for i in selection] == ["fn f() { 1 }", "fn f() { 2 }"]

    def test_duplicates_not_deduplicated(self):
        unit = build_unit("fn f() {}\nfn f() {}")
        assert len(select(unit, ItemPath.parse("f"))) == 2

    def test_raw_identifier_matches_plain_query(self):
        unit = build_unit("fn r#type() {}")
        assert len(select(unit, ItemPath.parse("type"))) == 1

    def test_stable_grammar(self):
        unit = build_unit("fn plain() {}\nfn boxed() -> Box<u8> { box 1 }")
        assert select(unit, ItemPath.parse("plain")).stable_grammar
        assert not select(unit, ItemPath.parse("boxed")).stable_grammar


class TestItemsToRender:
    def test_single_module_renders_contents(self, unit):
        selection = select(unit, ItemPath.parse("outer"))
        items = items_to_render(selection)
        assert [i.name for i in items][:2] == ["foo", "Point"]
        assert len(items) == 4

    def test_other_items_render_themselves(self, unit):
        selection = select(unit, ItemPath.parse("outer::Point"))
        assert items_to_render(selection) == selection.items

    def test_empty_path_renders_items(self, unit):
        selection = select(unit, ItemPath.parse(""))
        assert items_to_render(selection) == unit.items
