"""Tests for kima.routing.table — regex route matching."""

import pytest

from kima.errors import ConfigurationError, ModuleRoutesError
from kima.routing.table import RouteTable, compile_pattern


class TestRoutePattern:
    def test_segments_must_all_match(self) -> None:
        route = compile_pattern("/users/\\d+", "User")
        assert route.matches(["users", "42"])
        assert not route.matches(["users", "bob"])

    def test_segment_count_must_be_equal(self) -> None:
        route = compile_pattern("/users/\\d+", "User")
        assert not route.matches(["users"])
        assert not route.matches(["users", "42", "edit"])

    def test_segments_are_anchored(self) -> None:
        route = compile_pattern("/users/\\d+", "User")
        assert not route.matches(["users", "42a"])
        assert not route.matches(["xusers", "42"])

    def test_root_pattern_matches_empty_path(self) -> None:
        route = compile_pattern("/", "Index")
        assert route.segments == ()
        assert route.matches([])
        assert not route.matches(["about"])

    def test_alternation_stays_within_segment(self) -> None:
        route = compile_pattern("/(about|contact)", "Page")
        assert route.matches(["about"])
        assert route.matches(["contact"])
        assert not route.matches(["aboutus"])

    def test_invalid_regex_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="users"):
            compile_pattern("/users/(", "User")


class TestRouteTable:
    def test_first_match_wins(self) -> None:
        table = RouteTable.from_mapping(
            {
                "/users/new": "UserForm",
                "/users/\\w+": "User",
            }
        )
        assert table.match(["users", "new"]) == "UserForm"
        assert table.match(["users", "ana"]) == "User"

    def test_declaration_order_is_kept(self) -> None:
        table = RouteTable.from_mapping({"/a": "A", "/b": "B", "/c": "C"})
        assert [route.controller for route in table] == ["A", "B", "C"]
        assert len(table) == 3

    def test_no_match_returns_none(self) -> None:
        table = RouteTable.from_mapping({"/": "Index"})
        assert table.match(["missing"]) is None

    def test_module_sub_tables(self) -> None:
        table = RouteTable.from_mapping(
            {
                "/": "Index",
                "shop": {"/": "Catalog", "/cart": "Cart"},
            }
        )
        assert table.modules == ("shop",)
        assert table.for_module("shop").match(["cart"]) == "Cart"
        assert table.for_module("shop").match([]) == "Catalog"
        # module tables are not part of the top-level routes
        assert [route.controller for route in table] == ["Index"]

    def test_missing_module_raises(self) -> None:
        table = RouteTable.from_mapping({"/": "Index"})
        with pytest.raises(ModuleRoutesError, match='module "blog"'):
            table.for_module("blog")

    def test_non_string_values_are_ignored(self) -> None:
        table = RouteTable.from_mapping({"/": "Index", "/count": 3})
        assert len(table) == 1
        assert table.match(["count"]) is None


class TestPatternQuantifiers:
    def test_question_mark_is_a_regex_quantifier(self) -> None:
        route = compile_pattern("/colou?r", "Color")
        assert route.matches(["color"])
        assert route.matches(["colour"])
