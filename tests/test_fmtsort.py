import math
from dataclasses import dataclass

import pytest

from gobuildkit.fmtsort import SortedMap, compare, sort_map


@dataclass(frozen=True)
class Toy:
    a: int
    b: int


@dataclass(frozen=True)
class Pair:
    x: int
    y: int


NAN = float("nan")
INF = float("inf")

COMPARE_TESTS = [
    [-1, 0, 1],
    [0, 1, 5],
    ["", "a", "ab"],
    [b"", b"a", b"ab"],
    [NAN, -INF, -1e10, 0.0, 1e10, INF],
    [-1 - 1j, -1 + 0j, -1 + 1j, 0 - 1j, 0 + 0j, 0 + 1j, 1 - 1j, 1 + 0j, 1 + 1j],
    [False, True],
    [Toy(0, 1), Toy(0, 2), Toy(1, -1), Toy(1, 1)],
    [(1, 1), (1, 2), (2, 0)],
    [None, 1, 2, 3],
]


@pytest.mark.parametrize("values", COMPARE_TESTS)
def test_compare(values):
    for i, v0 in enumerate(values):
        for j, v1 in enumerate(values):
            if i == j:
                expect = -1 if isinstance(v0, float) and math.isnan(v0) else 0
            elif i < j:
                expect = -1
            else:
                expect = 1
            assert compare(v0, v1) == expect, (v0, v1)


def test_compare_objects_by_identity():
    objs = [object(), object(), object()]
    for a in objs:
        assert compare(a, a) == 0
        for b in objs:
            if a is not b:
                assert compare(a, b) == -compare(b, a)
                assert compare(a, b) in (-1, 1)


def test_compare_bad_type():
    with pytest.raises(TypeError):
        compare([1], [2])


def test_compare_tuples_by_length():
    assert compare((1, 2), (1, 2, 0)) == -1
    assert compare((1, 2, 0), (1, 2)) == 1


@pytest.mark.parametrize(
    "data, keys, values",
    [
        ({7: "bar", -3: "foo"}, [-3, 7], ["foo", "bar"]),
        ({"7": "bar", "3": "foo"}, ["3", "7"], ["foo", "bar"]),
        ({True: "true", False: "false"}, [False, True], ["false", "true"]),
        (
            {Toy(7, 2): "72", Toy(7, 1): "71", Toy(3, 4): "34"},
            [Toy(3, 4), Toy(7, 1), Toy(7, 2)],
            ["34", "71", "72"],
        ),
        (
            {(7, 2): "72", (7, 1): "71", (3, 4): "34"},
            [(3, 4), (7, 1), (7, 2)],
            ["34", "71", "72"],
        ),
    ],
)
def test_order(data, keys, values):
    result = sort_map(data)
    assert result.keys == keys
    assert result.values == values
    assert len(result) == len(keys)


def test_order_float_nan():
    result = sort_map({7.0: "bar", -3.0: "foo", NAN: "nan", INF: "inf"})
    assert result.values == ["nan", "foo", "bar", "inf"]
    assert math.isnan(result.keys[0])


def test_order_complex_nan():
    data = {
        7 + 2j: "bar2",
        7 + 1j: "bar",
        -3 + 0j: "foo",
        complex(NAN, 0): "nan",
        complex(INF, 0): "inf",
    }
    assert sort_map(data).values == ["nan", "foo", "bar", "bar2", "inf"]


def test_order_objects_consistent():
    objs = [object() for _ in range(3)]
    data = {obj: str(i) for i, obj in enumerate(objs)}
    result = sort_map(data)
    assert sorted(result.keys, key=id) == result.keys
    assert set(result.values) == {"0", "1", "2"}


def test_items_and_iteration():
    result = sort_map({2: "b", 1: "a"})
    assert result.items() == [(1, "a"), (2, "b")]
    assert list(result) == [(1, "a"), (2, "b")]
    assert result == SortedMap(keys=[1, 2], values=["a", "b"])


def test_sort_non_mapping():
    assert sort_map([1, 2, 3]) is None


def test_interface():
    data = {
        (1, 0): "",
        (0, 1): "",
        True: "",
        False: "",
        3.1: "",
        2.1: "",
        1.1: "",
        NAN: "",
        3: "",
        2: "",
        "c": "",
        "b": "",
        "a": "",
        Pair(1, 0): "",
        Pair(0, 1): "",
    }
    keys = sort_map(data).keys
    assert len(keys) == len(data)

    # Keys of one type form a single contiguous run.
    types = [type(k) for k in keys]
    runs = [t for i, t in enumerate(types) if i == 0 or types[i - 1] is not t]
    assert len(runs) == len(set(types)) == 6

    floats = [k for k in keys if type(k) is float]
    assert math.isnan(floats[0])
    assert floats[1:] == [1.1, 2.1, 3.1]
    assert [k for k in keys if type(k) is bool] == [False, True]
    assert [k for k in keys if type(k) is int] == [2, 3]
    assert [k for k in keys if type(k) is str] == ["a", "b", "c"]
    assert [k for k in keys if type(k) is tuple] == [(0, 1), (1, 0)]
    assert [k for k in keys if type(k) is Pair] == [Pair(0, 1), Pair(1, 0)]