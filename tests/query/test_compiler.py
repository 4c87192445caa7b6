import logging
import re

import pytest

from filterclause import Combinator, FilterCompiler, FilterError

ONES = {"only": ["DatumOne/1", "DatumOne/2"]}
POLYS = {"except": "DatumOne/1"}
BLOCKED = {"only": [1, 2], "except": [1]}


def _balanced(clause):
    depth = 0
    for ch in clause:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def test_acceptable_body_accepts_mappings_only():
    assert FilterCompiler.acceptable_body({}) is True
    assert FilterCompiler.acceptable_body(1234) is False
    assert FilterCompiler.acceptable_body(" ") is False
    assert FilterCompiler.acceptable_body([]) is False
    assert FilterCompiler.acceptable_body(None) is False


def test_empty_and_none_bodies_generate_nothing(g1):
    assert g1.generate({}) is None
    assert dict(g1.params) == {}
    assert g1.generate(None) is None
    assert dict(g1.params) == {}


def test_non_mapping_body_is_rejected(g1):
    with pytest.raises(FilterError):
        g1.generate([("ones", ONES)])


def test_single_filter_is_not_wrapped_again(g1):
    assert g1.generate({"ones": ONES}) == "(c_one IN (:p1))"
    assert dict(g1.params) == {"p1": [1, 2]}


def test_all_root_joins_with_and(g1):
    clause = g1.generate({"all": {"ones": ONES, "polys": POLYS, "blocked": BLOCKED}})
    assert clause == "((c_one IN (:p1)) AND (c_poly NOT IN (:p2)) AND (c_blocked IN (:p3)))"
    assert dict(g1.params) == {"p1": [1, 2], "p2": ["DatumOne/1"], "p3": [20]}


def test_any_root_joins_with_or(g1):
    clause = g1.generate({"any": {"ones": ONES, "polys": POLYS, "blocked": BLOCKED}})
    assert clause == "((c_one IN (:p1)) OR (c_poly NOT IN (:p2)) OR (c_blocked IN (:p3)))"
    assert dict(g1.params) == {"p1": [1, 2], "p2": ["DatumOne/1"], "p3": [20]}


def test_multiple_top_level_filters_default_to_and(g1):
    clause = g1.generate({"ones": ONES, "polys": POLYS})
    assert clause == "((c_one IN (:p1)) AND (c_poly NOT IN (:p2)))"


def test_default_combinator_argument(g1):
    assert g1.generate({"ones": ONES, "polys": POLYS}, "any") == "((c_one IN (:p1)) OR (c_poly NOT IN (:p2)))"
    assert g1.generate({"ones": ONES, "polys": POLYS}, Combinator.ALL) == "((c_one IN (:p1)) AND (c_poly NOT IN (:p2)))"


def test_nesting_from_a_single_root(g1):
    body = {
        "any": {
            "ones": ONES,
            "all": {
                "polys": POLYS,
                "any": {
                    "blocked": BLOCKED,
                    "block2": {"only": [3, 5]},
                },
            },
        }
    }
    clause = g1.generate(body)
    assert clause == "((c_one IN (:p1)) OR ((c_poly NOT IN (:p2)) AND ((c_blocked IN (:p3)) OR (c_block2 IN (:p4)))))"
    assert dict(g1.params) == {"p1": [1, 2], "p2": ["DatumOne/1"], "p3": [20], "p4": [6, 10]}


def test_nesting_from_a_multiple_root(g1):
    clause = g1.generate({"ones": ONES, "any": {"polys": POLYS, "blocked": BLOCKED}}, "any")
    assert clause == "((c_one IN (:p1)) OR ((c_poly NOT IN (:p2)) OR (c_blocked IN (:p3))))"


def test_not_inverts_clauses(g1):
    assert g1.generate({"not": {"ones": ONES}}) == "(NOT (c_one IN (:p1)))"

    clause = g1.generate({"not": {"any": {"ones": ONES, "polys": POLYS}}})
    assert clause == "(NOT ((c_one IN (:p1)) OR (c_poly NOT IN (:p2))))"

    clause = g1.generate({"ones": ONES, "not": {"polys": POLYS}, "blocked": BLOCKED})
    assert clause == "((c_one IN (:p1)) AND (NOT (c_poly NOT IN (:p2))) AND (c_blocked IN (:p3)))"


def test_unknown_filter_names_are_ignored(g1, caplog):
    caplog.set_level(logging.DEBUG, logger="filterclause")
    clause = g1.generate({"ones": ONES, "unknown": {"only": [1]}, "any": {"other": 3}})
    assert clause == "(c_one IN (:p1))"
    assert dict(g1.params) == {"p1": [1, 2]}
    assert "ignoring unknown filter unknown" in caplog.text


def test_no_match_aborts_the_whole_pass(g1):
    assert g1.generate({"ones": ONES, "blocked": {"only": [1], "except": [1]}}) is False
    assert g1.generate({"any": {"ones": ONES, "all": {"tags": {"only": [1, 2], "except": [2, 1]}}}}) is False


def test_nil_generating_filters_add_no_fragment(g1):
    assert g1.generate({"nil_custom": {"x": 1}, "ones": ONES}) == "(c_one IN (:p1))"
    assert g1.generate({"nil_custom": {"x": 1}}) is None


def test_generate_restarts_parameter_numbering(g1):
    g1.generate({"ones": ONES, "polys": POLYS})
    assert g1.counter == 2
    assert g1.generate({"polys": POLYS}) == "(c_poly NOT IN (:p1))"
    assert dict(g1.params) == {"p1": ["DatumOne/1"]}


def test_reset_clears_parameters(g1):
    g1.generate({"ones": ONES})
    g1.reset()
    assert g1.counter == 0
    assert dict(g1.params) == {}
    assert g1.allocate_parameter("x") == "p1"


def test_allocate_parameter_mints_unique_names(g1):
    names = [g1.allocate_parameter(i) for i in range(5)]
    assert names == ["p1", "p2", "p3", "p4", "p5"]
    assert g1.get_parameter("p3") == 2
    g1.set_parameter("p3", "changed")
    assert g1.params["p3"] == "changed"


def test_params_is_read_only(g1):
    g1.generate({"ones": ONES})
    with pytest.raises(TypeError):
        g1.params["p1"] = []


def test_every_placeholder_has_a_bind_value(g1):
    body = {
        "any": {
            "ones": ONES,
            "ts1": {"between": ["2024-02-01T00:00:00", "2024-01-01T00:00:00"]},
            "all": {"polys": POLYS, "not": {"blocked": BLOCKED}, "cstm": {"foo": "X"}},
        }
    }
    clause = g1.generate(body)
    assert _balanced(clause)
    names = re.findall(r":(p\d+)", clause)
    assert len(names) == len(set(names))
    assert set(names) == set(g1.params)


def test_param_prefix_is_configurable(cfg_1):
    g = FilterCompiler(cfg_1, param_prefix="q")
    assert g.generate({"ones": ONES}) == "(c_one IN (:q1))"
    assert dict(g.params) == {"q1": [1, 2]}


def test_copy_shares_configuration(g1):
    g = g1.copy()
    assert g.config is g1.config
    g1.generate({"ones": ONES})
    assert dict(g.params) == {}


def test_compile_snapshots_the_bind_table(g1):
    first = g1.compile({"ones": ONES})
    second = g1.compile({"polys": POLYS})
    assert first.clause == "(c_one IN (:p1))"
    assert first.params == {"p1": [1, 2]}
    assert second.params == {"p1": ["DatumOne/1"]}


def test_compile_reports_no_match(g1):
    res = g1.compile({"tags": {"only": [1], "except": [1]}})
    assert res.matches_nothing
    assert res.where_sql() == "WHERE 1=0"


def test_no_match_discards_earlier_bind_values(g1):
    res = g1.compile({"ones": ONES, "blocked": {"only": [1], "except": [1]}})
    assert res.clause is False
    assert res.params == {}
    assert dict(g1.params) == {}
    assert g1.counter == 0


def test_reset_keeps_earlier_snapshots(g1):
    g1.generate({"ones": ONES})
    view = g1.params
    g1.reset()
    assert dict(view) == {"p1": [1, 2]}
    assert dict(g1.params) == {}
