import pytest

from filterclause import FilterCompiler, FilterError


class Datum:
    """Minimal stand-in for a persisted object handle."""

    def __init__(self, id):
        self.id = id

    @property
    def fingerprint(self):
        return f"{type(self).__name__}/{self.id}"


class DatumOne(Datum):
    pass


class DatumTwo(Datum):
    pass


class DatumOneSub(DatumOne):
    pass


# Import-path targets for configuration file tests.

def times_ten(values, kind):
    return [int(v) * 10 for v in values]


def lower_foo(g, name, desc, value):
    if not value.get("foo"):
        raise FilterError(f"missing required foo property in {value}")
    p = g.allocate_parameter(value["foo"].lower())
    return f"(LOWER({desc.field}) = :{p})"


@pytest.fixture
def cfg_1():
    return {
        "filters": {
            "ones": {
                "type": "references",
                "field": "c_one",
                "class_name": "DatumOne",
                "convert": "id",
            },
            "polys": {
                "type": "polymorphic_references",
                "field": "c_poly",
                "convert": "fingerprint",
            },
            "blocked": {
                "type": "block_list",
                "field": "c_blocked",
                "convert": lambda values, kind: [e * 10 for e in values],
            },
            "block2": {
                "type": "block_list",
                "field": "c_block2",
                "convert": lambda values, kind: [e * 2 for e in values],
            },
            "tags": {
                "type": "block_list",
                "field": "c_tags",
                "convert": lambda values, kind: values,
            },
            "ts1": {
                "type": "timestamp",
                "field": "c_ts1",
                "convert": "timestamp",
            },
            "cstm": {
                "type": "custom",
                "field": "c_custom",
                "convert": "custom",
                "generator": lower_foo,
            },
            "nil_custom": {
                "type": "custom",
                "field": "c_nil",
                "convert": "custom",
                "generator": lambda g, n, d, v: None,
            },
        }
    }


def _single_or_list(g, d, lists, eq, ne):
    if lists.get("only"):
        if len(lists["only"]) == 1:
            p = g.allocate_parameter(lists["only"][0])
            return f"({d.field} {eq} :{p})"
        p = g.allocate_parameter(lists["only"])
        return f"({d.field} IN (:{p}))"
    if "except" in lists:
        if len(lists["except"]) == 1:
            p = g.allocate_parameter(lists["except"][0])
            return f"({d.field} {ne} :{p})"
        p = g.allocate_parameter(lists["except"])
        return f"({d.field} NOT IN (:{p}))"
    return None


@pytest.fixture
def cfg_2():
    from filterclause.query import generate_timestamp_clause

    def ts_generator(g, n, d, v):
        if v.get("special"):
            p = g.allocate_parameter(str(v["special"]))
            return f"({d.field} LIKE :{p})"
        return generate_timestamp_clause(g, n, d, v)

    return {
        "filters": {
            "ones": {
                "type": "references",
                "field": "c_one",
                "class_name": "DatumOne",
                "generator": lambda g, n, d, v: _single_or_list(g, d, v, "=", "!="),
            },
            "polys": {
                "type": "polymorphic_references",
                "field": "c_poly",
                "generator": lambda g, n, d, v: _single_or_list(g, d, v, "LIKE", "NOT LIKE"),
            },
            "blocked": {
                "type": "block_list",
                "field": "c_blocked",
                "convert": lambda values, kind: [e * 10 for e in values],
                "generator": lambda g, n, d, v: _single_or_list(g, d, v, "=", "!="),
            },
            "ts1": {
                "type": "timestamp",
                "field": "c_ts1",
                "generator": ts_generator,
            },
        }
    }


@pytest.fixture
def g1(cfg_1):
    return FilterCompiler(cfg_1)


@pytest.fixture
def g2(cfg_2):
    return FilterCompiler(cfg_2)
