#!/usr/bin/env python3
"""
Tests for the SQL filter translator.
"""

import datetime

import pytest

from omnifilter.filters import (
    JSONFieldResolver, SQLFilterTranslator, convert_filter_to_sql
)
from omnifilter.exceptions import (
    FilterDepthError, InvalidFilterShapeError,
    InvalidOperandShapeError, UnsupportedOperatorError
)


class TestBasicTranslation:
    """Test single-field filters."""

    def test_empty_filter(self, sql):
        assert sql.translate({}) == ("", [])

    def test_none_filter(self, sql):
        assert sql.translate(None) == ("", [])

    def test_simple_equality(self, sql):
        assert sql.translate({"age": 25}) == ("age = ?", [25])

    def test_slash_pattern(self, sql):
        assert sql.translate({"name": "/joh/"}) == ("name LIKE ?", ["%joh%"])

    def test_slash_pattern_start_anchor(self, sql):
        assert sql.translate({"name": "/^John/"}) == ("name LIKE ?", ["John%"])

    def test_multiple_fields(self, sql):
        """Top-level conditions are joined with a bare AND."""
        assert sql.translate({"age": 25, "name": "/john/"}) == (
            "age = ? AND name LIKE ?", [25, "%john%"]
        )

    def test_range_on_one_field(self, sql):
        assert sql.translate({"age": {"$gte": 18, "$lt": 65}}) == (
            "(age >= ? AND age < ?)", [18, 65]
        )

    def test_null_equality(self, sql):
        assert sql.translate({"deleted_at": None}) == ("deleted_at = ?", [None])

    def test_date_equality(self, sql):
        when = datetime.date(2024, 1, 1)
        assert sql.translate({"created": when}) == ("created = ?", [when])

    def test_boolean_equality(self, sql):
        assert sql.translate({"active": True}) == ("active = ?", [True])

    def test_implicit_in_for_arrays(self, sql):
        assert sql.translate({"status": ["active", "pending"]}) == (
            "status IN (?, ?)", ["active", "pending"]
        )

    def test_tuple_is_an_array(self, sql):
        assert sql.translate({"status": ("a",)}) == ("status IN (?)", ["a"])

    def test_dotted_field_name(self, sql):
        assert sql.translate({"address.city": "Paris"}) == ("address.city = ?", ["Paris"])


class TestOperators:
    """Test each operator of the closed set."""

    @pytest.mark.parametrize("operator,sql_op", [
        ("$eq", "="), ("$ne", "!="), ("$gt", ">"),
        ("$gte", ">="), ("$lt", "<"), ("$lte", "<="),
    ])
    def test_comparisons(self, sql, operator, sql_op):
        assert sql.translate({"age": {operator: 30}}) == (f"age {sql_op} ?", [30])

    def test_in(self, sql):
        assert sql.translate({"status": {"$in": ["active", "pending"]}}) == (
            "status IN (?, ?)", ["active", "pending"]
        )

    def test_nin(self, sql):
        assert sql.translate({"status": {"$nin": ["deleted"]}}) == (
            "status NOT IN (?)", ["deleted"]
        )

    def test_empty_in_matches_nothing(self, sql):
        assert sql.translate({"status": {"$in": []}}) == ("0=1", [])
        assert sql.translate({"status": {"$nin": []}}) == ("1=1", [])
        assert sql.translate({"status": []}) == ("0=1", [])

    @pytest.mark.parametrize("operator", ["$in", "$nin"])
    def test_membership_requires_array(self, sql, operator):
        with pytest.raises(InvalidOperandShapeError, match="requires an array"):
            sql.translate({"status": {operator: "active"}})

    @pytest.mark.parametrize("operator,sql_op", [
        ("$like", "LIKE"), ("$notLike", "NOT LIKE"),
        ("$iLike", "ILIKE"), ("$notILike", "NOT ILIKE"),
        ("$regexp", "REGEXP"), ("$notRegexp", "NOT REGEXP"),
    ])
    def test_pattern_operators_pass_pattern_through(self, sql, operator, sql_op):
        assert sql.translate({"name": {operator: "J%"}}) == (f"name {sql_op} ?", ["J%"])

    def test_pattern_operator_requires_string(self, sql):
        with pytest.raises(InvalidOperandShapeError):
            sql.translate({"name": {"$like": 5}})

    def test_regex(self, sql):
        assert sql.translate({"name": {"$regex": "^Jo"}}) == ("name LIKE ?", ["Jo%"])

    def test_regex_escapes_wildcards(self, sql):
        assert sql.translate({"code": {"$regex": "a_b"}}) == ("code LIKE ?", ["%a\\_b%"])

    def test_like_escape_clause(self):
        translator = SQLFilterTranslator(like_escape=True)
        assert translator.translate({"code": "/a_b/"}) == (
            "code LIKE ? ESCAPE '\\'", ["%a\\_b%"]
        )
        assert translator.translate({"code": {"$regex": "^100%$"}}) == (
            "code LIKE ? ESCAPE '\\'", ["100\\%"]
        )

    def test_like_escape_leaves_explicit_like_alone(self):
        translator = SQLFilterTranslator(like_escape=True)
        assert translator.translate({"code": {"$like": "a%"}}) == ("code LIKE ?", ["a%"])

    def test_compiled_pattern_params_are_plain_strings(self, sql):
        _, params = sql.translate({"name": "/joh/"})
        assert type(params[0]) is str

    def test_between(self, sql):
        assert sql.translate({"age": {"$between": [18, 65]}}) == (
            "age BETWEEN ? AND ?", [18, 65]
        )
        assert sql.translate({"age": {"$notBetween": [18, 65]}}) == (
            "age NOT BETWEEN ? AND ?", [18, 65]
        )

    @pytest.mark.parametrize("operand", [[1], [1, 2, 3], 5])
    def test_between_requires_two_values(self, sql, operand):
        with pytest.raises(InvalidOperandShapeError, match="exactly 2"):
            sql.translate({"age": {"$between": operand}})

    def test_is(self, sql):
        assert sql.translate({"deleted_at": {"$is": None}}) == ("deleted_at IS NULL", [])
        assert sql.translate({"active": {"$is": True}}) == ("active IS TRUE", [])
        assert sql.translate({"active": {"$is": False}}) == ("active IS FALSE", [])

    def test_is_rejects_other_values(self, sql):
        with pytest.raises(InvalidOperandShapeError):
            sql.translate({"active": {"$is": 1}})

    def test_not(self, sql):
        assert sql.translate({"age": {"$not": {"$gt": 25}}}) == ("NOT (age > ?)", [25])

    def test_not_of_range_keeps_single_parentheses(self, sql):
        assert sql.translate({"age": {"$not": {"$gte": 18, "$lt": 65}}}) == (
            "NOT (age >= ? AND age < ?)", [18, 65]
        )

    def test_not_of_scalar_and_pattern(self, sql):
        assert sql.translate({"status": {"$not": "deleted"}}) == ("NOT (status = ?)", ["deleted"])
        assert sql.translate({"name": {"$not": "/^Jo/"}}) == ("NOT (name LIKE ?)", ["Jo%"])

    def test_field_level_or(self, sql):
        assert sql.translate({"age": {"$or": [5, {"$gt": 60}]}}) == (
            "((age = ?) OR (age > ?))", [5, 60]
        )

    def test_field_level_nor(self, sql):
        assert sql.translate({"status": {"$nor": ["deleted", "archived"]}}) == (
            "NOT (status = ? OR status = ?)", ["deleted", "archived"]
        )

    def test_unknown_operator(self, sql):
        with pytest.raises(UnsupportedOperatorError, match="Unknown operator"):
            sql.translate({"age": {"$elemMatch": {"a": 1}}})

    def test_unknown_operator_suggests_close_match(self, sql):
        with pytest.raises(UnsupportedOperatorError) as excinfo:
            sql.translate({"age": {"$gtee": 1}})
        assert "$gte" in excinfo.value.suggestions

    def test_mixed_operator_and_plain_keys(self, sql):
        with pytest.raises(UnsupportedOperatorError):
            sql.translate({"age": {"$gt": 1, "max": 5}})


class TestCombinators:
    """Test $and / $or / $nor / $not combinators."""

    def test_and(self, sql):
        assert sql.translate({"$and": [{"age": {"$gte": 18}}, {"name": "/john/"}]}) == (
            "((age >= ?) AND (name LIKE ?))", [18, "%john%"]
        )

    def test_or(self, sql):
        assert sql.translate({"$or": [{"age": {"$lt": 18}}, {"age": {"$gt": 65}}]}) == (
            "((age < ?) OR (age > ?))", [18, 65]
        )

    def test_nested_combinators(self, sql):
        assert sql.translate({
            "$and": [
                {"age": {"$gte": 18}},
                {"$or": [{"status": "active"}, {"status": "pending"}]}
            ]
        }) == (
            "((age >= ?) AND ((status = ?) OR (status = ?)))",
            [18, "active", "pending"]
        )

    def test_nor_negates_the_whole_group(self, sql):
        assert sql.translate({"$nor": [{"status": "deleted"}, {"status": "archived"}]}) == (
            "NOT (status = ? OR status = ?)", ["deleted", "archived"]
        )

    def test_nor_parenthesizes_multi_field_documents(self, sql):
        assert sql.translate({"$nor": [{"a": 1, "b": 2}, {"c": 3}]}) == (
            "NOT ((a = ? AND b = ?) OR c = ?)", [1, 2, 3]
        )

    def test_or_parenthesizes_multi_field_documents(self, sql):
        assert sql.translate({"$or": [{"a": 1, "b": 2}, {"c": 3}]}) == (
            "((a = ? AND b = ?) OR (c = ?))", [1, 2, 3]
        )

    def test_single_survivor_is_unwrapped(self, sql):
        assert sql.translate({"$and": [{"age": 25}]}) == ("age = ?", [25])
        assert sql.translate({"$or": [{}, {"age": 25}, {}]}) == ("age = ?", [25])

    def test_empty_combinators_contribute_nothing(self, sql):
        assert sql.translate({"$and": []}) == ("", [])
        assert sql.translate({"$or": [{}, {}]}) == ("", [])
        assert sql.translate({"$nor": []}) == ("", [])
        assert sql.translate({"age": 25, "$or": []}) == ("age = ?", [25])

    def test_document_level_not(self, sql):
        assert sql.translate({"$not": {"status": "deleted", "age": 30}}) == (
            "NOT (status = ? AND age = ?)", ["deleted", 30]
        )

    def test_fields_and_combinators_mixed(self, sql):
        assert sql.translate({
            "age": {"$gte": 18},
            "name": "/john/",
            "$or": [{"status": "active"}, {"role": {"$in": ["admin", "moderator"]}}]
        }) == (
            "age >= ? AND name LIKE ? AND ((status = ?) OR (role IN (?, ?)))",
            [18, "%john%", "active", "admin", "moderator"]
        )

    @pytest.mark.parametrize("combinator", ["$and", "$or", "$nor"])
    def test_combinator_requires_array(self, sql, combinator):
        with pytest.raises(InvalidOperandShapeError, match="requires a list"):
            sql.translate({combinator: "x"})

    def test_combinator_items_must_be_documents(self, sql):
        with pytest.raises(InvalidFilterShapeError):
            sql.translate({"$and": [{"a": 1}, "b"]})

    def test_field_operator_at_document_level(self, sql):
        with pytest.raises(InvalidFilterShapeError, match="requires a field"):
            sql.translate({"$gt": 5})

    def test_unknown_document_level_operator(self, sql):
        with pytest.raises(UnsupportedOperatorError):
            sql.translate({"$where": "1=1"})


class TestInvalidShapes:
    """Test malformed filters."""

    def test_empty_operator_object(self, sql):
        with pytest.raises(InvalidFilterShapeError):
            sql.translate({"age": {}})

    def test_object_without_operator_keys(self, sql):
        with pytest.raises(InvalidFilterShapeError):
            sql.translate({"meta": {"a": 1}})

    def test_non_mapping_filter(self, sql):
        with pytest.raises(InvalidFilterShapeError):
            sql.translate(["age", 25])

    def test_max_depth(self):
        translator = SQLFilterTranslator(max_depth=3)
        translator.translate({"$and": [{"$or": [{"a": 1}, {"b": 2}]}]})

        with pytest.raises(FilterDepthError, match="depth"):
            translator.translate({"$and": [{"$or": [{"$and": [{"a": 1}]}]}]})

    def test_errors_are_value_errors(self, sql):
        with pytest.raises(ValueError):
            sql.translate({"$and": "x"})


class TestPlaceholderAlignment:
    """The Nth placeholder always corresponds to the Nth parameter."""

    FILTER = {
        "name": "/^Jo/",
        "age": {"$between": [18, 65], "$ne": 30},
        "$or": [
            {"status": {"$in": ["active", "pending"]}},
            {"$nor": [{"role": "guest"}, {"score": {"$lt": 3}}]},
        ],
        "deleted_at": {"$is": None},
        "tags": {"$not": {"$nin": ["spam", "bot"]}},
    }

    def test_counts_match(self, sql):
        where, params = sql.translate(self.FILTER)
        assert where.count("?") == len(params)

    def test_order_matches(self, sql):
        where, params = sql.translate(self.FILTER)
        assert params == ["Jo%", 18, 65, 30, "active", "pending", "guest", 3, "spam", "bot"]
        assert where == (
            "name LIKE ? AND (age BETWEEN ? AND ? AND age != ?) AND "
            "((status IN (?, ?)) OR (NOT (role = ? OR score < ?))) AND "
            "deleted_at IS NULL AND NOT (tags NOT IN (?, ?))"
        )

    def test_deterministic(self, sql):
        assert sql.translate(self.FILTER) == sql.translate(self.FILTER)

    def test_translator_is_reusable(self, sql):
        sql.translate({"a": 1})
        assert sql.translate({"b": 2}) == ("b = ?", [2])


class TestFieldResolver:
    """Test custom field references."""

    def test_json_fields(self):
        translator = SQLFilterTranslator(
            field_resolver=JSONFieldResolver(direct_fields={"id"}, table_alias="m")
        )
        assert translator.translate({"id": 1, "breadcrumbs.task": "auth"}) == (
            "m.id = ? AND json_extract(m.metadata, '$.breadcrumbs.task') = ?",
            [1, "auth"]
        )

    def test_json_path_quotes_are_escaped(self):
        resolver = JSONFieldResolver(json_column="data")
        assert resolver("o'brien") == "json_extract(data, '$.o''brien')"

    def test_convert_filter_to_sql(self):
        assert convert_filter_to_sql({"age": 25}, field_resolver=str.upper) == ("AGE = ?", [25])
