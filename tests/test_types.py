from __future__ import annotations

import random

import pytest

from tealgen.errors import CyclicTypeError
from tealgen.types import (
    ANY,
    ARRAY,
    BOOLEAN,
    INTEGER,
    NIL,
    NUMBER,
    STRING,
    array_of,
    collect_generics,
    function_of,
    generic,
    map_of,
    named,
    named_parameters,
    union_of,
)


def test_composite_names():
    t = generic("T")
    assert array_of(STRING).name == "{string}"
    assert map_of(STRING, array_of(INTEGER)).name == "{string : {integer}}"
    assert function_of([STRING, t], [BOOLEAN]).name == "function(string, T): (boolean)"
    assert function_of().name == "function(): ()"
    assert named("List", t).name == "List<T>"
    assert named_parameters([("a", STRING), ("b", INTEGER)]).name == "a: string, b: integer"


def test_structurally_equal_descriptors_are_one_node():
    a = map_of(STRING, array_of(NUMBER))
    b = map_of(named("string"), array_of(named("number")))
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert a.kind == b.kind == "map"


def test_parts_compose_to_name():
    from tealgen.names import compose

    t = map_of(STRING, union_of(INTEGER, NIL))
    assert compose(t.parts) == t.name


def test_union_order_is_independent_of_insertion(limited_union):
    members = [STRING, NUMBER, BOOLEAN, named("Example"), array_of(STRING), ANY]
    expected = union_of(*members).name
    rng = random.Random(7)
    for _ in range(20):
        rng.shuffle(members)
        assert union_of(*members).name == expected
    assert expected == "string | number | boolean | any | Example | {string}"
    assert limited_union.name == "string | number | boolean"


def test_union_flattens_and_collapses():
    inner = union_of(STRING, NUMBER)
    assert union_of(inner, BOOLEAN, STRING) == union_of(STRING, NUMBER, BOOLEAN)
    assert union_of(STRING, STRING) == STRING
    with pytest.raises(ValueError):
        union_of()


def test_named_parameters_reject_duplicates():
    with pytest.raises(ValueError):
        named_parameters([("a", STRING), ("a", NUMBER)])


def test_collect_generics_finds_every_reachable_generic_once():
    t, u, v = generic("T"), generic("U"), generic("V")
    types = [
        array_of(t),
        map_of(u, function_of([t], [array_of(v)])),
        union_of(generic("T"), STRING),
        named("List", u),
        named_parameters([("x", v)]),
        STRING,
    ]
    found = collect_generics(types)
    assert found == {t, u, v}
    assert len(found) == 3


def test_collect_generics_includes_generic_containers_and_their_children():
    inner = generic("K")
    outer = generic("Table", inner)
    assert collect_generics([outer]) == {outer, inner}


def test_collect_generics_empty_for_concrete_types():
    assert collect_generics([STRING, array_of(map_of(STRING, NUMBER))]) == set()
    assert collect_generics([]) == set()


def test_collect_generics_terminates_on_cycles():
    t = generic("T")
    node = array_of(t)
    # Descriptors are frozen; forge the self-reference a broken producer could hand us.
    object.__setattr__(node, "element", union_of(node, t, STRING))
    loop = function_of([t], [])
    object.__setattr__(loop, "params", (loop, t))
    assert collect_generics([node, loop]) == {t}
    assert loop.kind == "function"
    assert node.kind == ARRAY


def test_cyclic_name_is_reported():
    node = array_of(STRING)
    object.__setattr__(node, "element", node)
    with pytest.raises(CyclicTypeError):
        _ = node.name


def test_unknown_kind_rejected():
    from tealgen.types import TypeDescriptor

    with pytest.raises(ValueError):
        TypeDescriptor("tuple")
