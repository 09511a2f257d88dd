import random

from sqlstress.core.parameters import ParameterResolver, format_value


class _FirstChoice:
    def choice(self, seq):
        return seq[0]


class _CyclingChoice:
    def __init__(self):
        self.calls = 0

    def choice(self, seq):
        value = seq[self.calls % len(seq)]
        self.calls += 1
        return value


def test_repeated_token_gets_one_value():
    resolver = ParameterResolver(random.Random(7))
    sql = resolver.resolve(
        "select :a as x, :a as y from t where c = :a",
        {"a": [1, 2, 3, 4, 5, 6, 7, 8, 9]},
    )
    values = [
        sql.split(" as x")[0].removeprefix("select "),
        sql.split(", ")[1].split(" as y")[0],
        sql.rsplit("= ", 1)[1],
    ]
    assert len(set(values)) == 1
    assert values[0] in {str(i) for i in range(1, 10)}


def test_one_draw_per_distinct_name():
    rng = _CyclingChoice()
    resolver = ParameterResolver(rng)
    sql = resolver.resolve(
        "between ':start' and ':end' or ':start'",
        {"start": ["2018-01-01", "2019-01-01"], "end": ["2018-02-10", "2018-02-11"]},
    )
    assert rng.calls == 2
    assert sql == "between '2018-01-01' and '2018-02-11' or '2018-01-01'"


def test_unknown_and_empty_tokens_left_alone():
    resolver = ParameterResolver(_FirstChoice())
    assert resolver.resolve("select :b", {"a": [1]}) == "select :b"
    assert resolver.resolve("select :a", {"a": []}) == "select :a"
    assert resolver.resolve("select :a", None) == "select :a"


def test_longer_token_not_clobbered():
    resolver = ParameterResolver(_FirstChoice())
    assert resolver.resolve("select :id, :id_2", {"id": [7]}) == "select 7, :id_2"


def test_each_call_draws_again():
    resolver = ParameterResolver(_CyclingChoice())
    params = {"n": [1, 2]}
    assert resolver.resolve("x = :n", params) == "x = 1"
    assert resolver.resolve("x = :n", params) == "x = 2"


def test_format_value():
    assert format_value(True) == "true"
    assert format_value(False) == "false"
    assert format_value(None) == "null"
    assert format_value(3.0) == "3"
    assert format_value(2.5) == "2.5"
    assert format_value("abc") == "abc"
    assert format_value(42) == "42"
