from __future__ import annotations

import json

import msgpack
import pytest

from tealgen.errors import DocumentError, GenericsMismatchError
from tealgen.function import FunctionDescriptor
from tealgen.record import RecordBuilder
from tealgen.types import (
    BOOLEAN,
    INTEGER,
    NUMBER,
    STRING,
    array_of,
    function_of,
    generic,
    map_of,
    named,
    named_parameters,
    union_of,
)
from tealgen.walker import TypeWalker


def _walker() -> TypeWalker:
    t, k = generic("T"), generic("K")
    shape = union_of(STRING, NUMBER, BOOLEAN)
    rec = (
        RecordBuilder(named("Example"), is_user_data=True)
        .add_field("items", map_of(k, array_of(t)))
        .add_method("limited_simple", [shape], [shape])
        .add_method("call", [function_of([t], [named("List", t)])], [t])
        .add_meta_method("__len", [], [INTEGER])
        .add_function("new", [named_parameters([("size", INTEGER), ("name", STRING)])], [named("Example")])
        .document_type("An example.")
        .build()
    )
    return (
        TypeWalker()
        .register(rec, FunctionDescriptor.new("concat", [STRING, STRING], [STRING]))
        .document("concat", "Joins strings.")
    )


def test_document_shape():
    doc = _walker().to_document()
    assert doc["version"] == 1
    assert [r["type"] for r in doc["records"]] == [{"kind": "named", "name": "Example"}]
    rec = doc["records"][0]
    assert [f["name"] for f in rec["fields"]] == ["items"]
    assert [m["name"] for m in rec["methods"]] == ["__len", "call", "limited_simple"]
    assert rec["methods"][0]["is_meta_method"] is True
    assert rec["methods"][1]["generics"] == [{"kind": "generic", "name": "T"}]
    assert rec["methods"][2]["params"] == [
        {
            "kind": "union",
            "variants": [
                {"kind": "named", "name": "string"},
                {"kind": "named", "name": "number"},
                {"kind": "named", "name": "boolean"},
            ],
        }
    ]
    assert rec["documentation"] == {"Example": "An example."}
    assert doc["functions"][0]["name"] == "concat"
    assert doc["documentation"] == {"concat": "Joins strings."}


def test_document_and_text_describe_the_same_members():
    w = _walker()
    text = w.render_all()
    doc = w.to_document()
    for rec in doc["records"]:
        assert f"record {rec['type']['name']}" in text
        for f in rec["fields"]:
            assert f"\t{f['name']}: " in text
        for m in rec["methods"] + rec["functions"]:
            assert f"{m['name']}: function" in text
    for fn in doc["functions"]:
        assert f"global {fn['name']}: function" in text


def test_json_roundtrip_recovers_equal_graph():
    w = _walker()
    payload = w.render_all_to_json(pretty=True)
    again = TypeWalker.from_json(payload)
    assert again.records == w.records
    assert again.functions == w.functions
    assert again.documentation == w.documentation
    assert again.render_all() == w.render_all()
    assert again.render_all_to_json(pretty=True) == payload


def test_msgpack_roundtrip_recovers_equal_graph():
    w = _walker()
    payload = w.render_all_to_msgpack()
    assert msgpack.unpackb(payload, raw=False) == json.loads(w.render_all_to_json())
    again = TypeWalker.from_msgpack(payload)
    assert again.records == w.records
    assert again.render_all() == w.render_all()


def test_json_is_stable():
    a = _walker().render_all_to_json()
    b = _walker().render_all_to_json()
    assert a == b
    assert "\n" not in a


def test_incomplete_generics_in_document_detected():
    doc = _walker().to_document()
    doc["records"][0]["methods"][1]["generics"] = []
    with pytest.raises(GenericsMismatchError):
        TypeWalker.from_document(doc)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.update(version=99),
        lambda d: d.update(records="nope"),
        lambda d: d["functions"][0].update(name=7),
        lambda d: d["functions"][0]["params"].append({"kind": "tuple"}),
        lambda d: d["functions"][0]["params"].append({"kind": "union", "variants": [{"kind": "named", "name": "x"}]}),
        lambda d: d["records"][0].update(is_user_data="yes"),
        lambda d: d["records"][0]["fields"].append(dict(d["records"][0]["fields"][0])),
        lambda d: d.update(documentation={"x": 1}),
    ],
)
def test_malformed_documents_rejected(mutate):
    doc = _walker().to_document()
    mutate(doc)
    with pytest.raises(DocumentError):
        TypeWalker.from_document(doc)


def test_unparseable_payloads_rejected():
    with pytest.raises(DocumentError):
        TypeWalker.from_json("{not json")
    with pytest.raises(DocumentError):
        TypeWalker.from_json("[]")
    with pytest.raises(DocumentError):
        TypeWalker.from_msgpack(b"\xc1")
