"""Tests for condition building and negation."""

import pytest

from src.translator.compiler.condition_builder import (
    NO_NEGATED_FORM,
    ConditionErrorKind,
    add_condition,
    add_negated_conditions,
    polygon_coords,
    strip_property_prefix,
)
from src.translator.draft import Draft
from src.translator.enums import LogicalOperator, PatternSlot, SpatialRelation
from src.translator.flow import GeoPoint, parse_node
from src.translator.ir import ComparisonCondition, SpatialCondition
from tests.conftest import SQUARE, make_rule, make_switch


def _queries(conditions) -> list[str]:
    return [c.query for c in conditions]


class TestComparison:
    """Tests for comparison conditions."""

    @pytest.mark.parametrize(
        "operator,symbol",
        [
            ("eq", "=="),
            ("neq", "!="),
            ("lt", "<"),
            ("lte", "<="),
            ("gt", ">"),
            ("gte", ">="),
            ("cont", "~="),
        ],
    )
    def test_renders_query(self, operator, symbol):
        """Every comparison renders '<property> <op> <value>'."""
        draft = Draft()
        result = add_condition(draft, "payload.attr1", operator, 100, "num")

        assert result.ok
        assert _queries(draft.fixed_conditions) == [f"attr1 {symbol} 100"]
        assert draft.fixed_conditions[0].to_expression() == {"q": f"attr1 {symbol} 100"}

    def test_property_registered_once(self):
        """Repeated properties are neither duplicated as variable nor attribute."""
        draft = Draft()
        add_condition(draft, "payload.attr1", "gt", 1, "num")
        add_condition(draft, "payload.attr1", "lt", 9, "num")

        assert draft.variables == ["attr1"]
        assert draft.input_device.attributes == ["attr1"]
        assert len(draft.fixed_conditions) == 2

    def test_nested_property_keeps_inner_path(self):
        """Only the message prefix is stripped."""
        draft = Draft()
        add_condition(draft, "payload.output.a", "eq", 1, "num")

        assert draft.variables == ["output.a"]

    def test_boolean_rendering(self):
        """Booleans render as lowercase literals."""
        draft = Draft()
        add_condition(draft, "payload.on", "eq", True, "bool")

        assert _queries(draft.fixed_conditions) == ["on == true"]

    def test_enum_operator_accepted(self):
        """LogicalOperator members work as well as their tags."""
        draft = Draft()
        assert add_condition(draft, "payload.a", LogicalOperator.GTE, 5, "num").ok

    def test_slot_is_respected(self):
        """Conditions land in the requested pattern slot."""
        draft = Draft()
        add_condition(draft, "payload.a", "lt", 5, "num", PatternSlot.FIRST)
        add_condition(draft, "payload.a", "gte", 5, "num", PatternSlot.SECOND)

        assert _queries(draft.first_conditions) == ["a < 5"]
        assert _queries(draft.second_conditions) == ["a >= 5"]


class TestFailures:
    """Tests for non-fatal condition failures."""

    def test_unknown_operator(self):
        """Unknown operators fail with InvalidOperator and leave the draft alone."""
        draft = Draft()
        result = add_condition(draft, "payload.a", "regex", "x", "str")

        assert result.error == ConditionErrorKind.INVALID_OPERATOR
        assert draft.pattern is None
        assert draft.variables == []

    def test_between_is_not_a_single_condition(self):
        """BETWEEN has no query symbol of its own."""
        result = add_condition(Draft(), "payload.a", "btwn", 1, "num")

        assert result.error == ConditionErrorKind.INVALID_OPERATOR

    def test_missing_draft(self):
        """A missing draft is an invalid parameter."""
        result = add_condition(None, "payload.a", "eq", 1, "num")

        assert result.error == ConditionErrorKind.INVALID_PARAMETER

    def test_missing_operator(self):
        result = add_condition(Draft(), "payload.a", None, 1, "num")

        assert result.error == ConditionErrorKind.INVALID_PARAMETER

    def test_missing_value(self):
        """A comparison without a value is an invalid parameter."""
        result = add_condition(Draft(), "payload.a", "eq", None, "num")

        assert result.error == ConditionErrorKind.INVALID_PARAMETER


class TestSpatial:
    """Tests for geofence conditions."""

    def test_polygon_is_closed(self):
        """The first vertex is repeated at the end, without trailing separator."""
        points = [GeoPoint(**p) for p in SQUARE]

        assert polygon_coords(points) == "1,1;1,2;2,2;2,1;1,1"

    def test_spatial_expression(self):
        """Spatial conditions render georel, geometry and coords."""
        draft = Draft()
        points = [GeoPoint(**p) for p in SQUARE]
        result = add_condition(draft, None, "coveredBy", points, "polyline")

        assert result.ok
        condition = draft.fixed_conditions[0]
        assert isinstance(condition, SpatialCondition)
        assert condition.to_expression() == {
            "georel": "coveredBy",
            "geometry": "polygon",
            "coords": "1,1;1,2;2,2;2,1;1,1",
        }

    def test_spatial_adds_no_variable(self):
        """Geofences do not touch variables or attributes."""
        draft = Draft()
        add_condition(draft, None, SpatialRelation.DISJOINT, [GeoPoint(**SQUARE[0])], "polyline")

        assert draft.variables == []
        assert draft.input_device.attributes == []

    def test_unsupported_mode(self):
        """Shapes other than polylines are rejected."""
        points = [GeoPoint(**p) for p in SQUARE]
        result = add_condition(Draft(), None, "coveredBy", points, "circle")

        assert result.error == ConditionErrorKind.INVALID_GEOFENCE_MODE

    @pytest.mark.parametrize("points,mode", [([], "polyline"), (None, "polyline"), (SQUARE, None)])
    def test_empty_geofence(self, points, mode):
        """Missing points or a missing mode is an empty geofence."""
        result = add_condition(Draft(), None, "disjoint", points, mode)

        assert result.error == ConditionErrorKind.EMPTY_GEOFENCE_NODE


class TestNegation:
    """Tests for add_negated_conditions."""

    def _switch(self, *rules):
        return parse_node(make_switch("sw", list(rules), [[] for _ in rules]))

    @pytest.mark.parametrize(
        "operator,negated",
        [("eq", "!="), ("neq", "=="), ("lt", ">="), ("lte", ">"), ("gt", "<="), ("gte", "<")],
    )
    def test_single_negation(self, operator, negated):
        """Each rule negates to its opposite operator."""
        draft = Draft()
        results = add_negated_conditions(draft, self._switch(make_rule(operator, 100)))

        assert all(r.ok for r in results)
        assert _queries(draft.fixed_conditions) == [f"attr1 {negated} 100"]

    @pytest.mark.parametrize("operator", ["eq", "neq", "lt", "lte", "gt", "gte"])
    def test_negation_is_involution(self, operator):
        """Negating twice gives back the operator."""
        op = LogicalOperator(operator)

        assert op.negated.negated == op

    def test_between_negates_to_two_bounds(self):
        """BETWEEN negates to '< lo' and '>= hi'."""
        draft = Draft()
        add_negated_conditions(draft, self._switch(make_rule("btwn", 10, v2=20)))

        assert _queries(draft.fixed_conditions) == ["attr1 < 10", "attr1 >= 20"]

    def test_contains_has_no_negated_form(self):
        """Rules without a negation report a status, not an error."""
        draft = Draft()
        results = add_negated_conditions(
            draft, self._switch(make_rule("cont", "x", "str"), make_rule("else"))
        )

        assert [r.status for r in results] == [NO_NEGATED_FORM, NO_NEGATED_FORM]
        assert all(r.ok for r in results)
        assert draft.fixed_conditions == []

    def test_mixed_siblings(self):
        """Only rules with a negated form contribute."""
        draft = Draft()
        add_negated_conditions(
            draft,
            self._switch(make_rule("eq", 1), make_rule("cont", "x", "str"), make_rule("gt", 5)),
        )

        assert draft.fixed_conditions == [
            ComparisonCondition(property="attr1", operator=LogicalOperator.NEQ, value="1"),
            ComparisonCondition(property="attr1", operator=LogicalOperator.LTE, value="5"),
        ]


def test_strip_property_prefix():
    """The message prefix is dropped, the rest of the path kept."""
    assert strip_property_prefix("payload.attr1") == "attr1"
    assert strip_property_prefix("attr1") == "attr1"
