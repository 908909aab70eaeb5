"""Structured (JSON / MessagePack) form of the descriptor graph.

The document mirrors what the declaration renderer emits: the same records,
fields and functions, listed in the same order, so snapshots stay stable.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import msgpack

from .errors import DocumentError
from .function import FunctionDescriptor
from .names import decode_name, raw_name
from .record import RecordDescriptor
from .types import (
    ARRAY,
    FUNCTION,
    GENERIC,
    MAP,
    NAMED,
    PARAMETERS,
    UNION,
    TypeDescriptor,
    array_of,
    function_of,
    generic,
    map_of,
    named,
    named_parameters,
    ordered_variants,
    union_of,
)

DOCUMENT_VERSION = 1


@dataclass(frozen=True)
class LoadedDocument:
    records: list[RecordDescriptor]
    functions: list[FunctionDescriptor]
    documentation: dict[bytes, str]


def type_to_dict(t: TypeDescriptor) -> dict[str, Any]:
    if t.kind in (GENERIC, NAMED):
        out: dict[str, Any] = {"kind": t.kind, "name": t.ident}
        if t.args:
            out["args"] = [type_to_dict(a) for a in t.args]
        return out
    if t.kind == ARRAY:
        return {"kind": ARRAY, "element": type_to_dict(t.element)}
    if t.kind == MAP:
        return {"kind": MAP, "key": type_to_dict(t.key), "value": type_to_dict(t.value)}
    if t.kind == UNION:
        return {"kind": UNION, "variants": [type_to_dict(v) for v in ordered_variants(t.variants)]}
    if t.kind == FUNCTION:
        return {
            "kind": FUNCTION,
            "params": [type_to_dict(p) for p in t.params],
            "returns": [type_to_dict(r) for r in t.returns],
        }
    return {
        "kind": PARAMETERS,
        "members": [{"name": n, "type": type_to_dict(mt)} for n, mt in t.members],
    }


def function_to_dict(fn: FunctionDescriptor) -> dict[str, Any]:
    return {
        "name": decode_name(fn.name),
        "params": [type_to_dict(p) for p in fn.params],
        "returns": [type_to_dict(r) for r in fn.returns],
        "generics": [type_to_dict(g) for g in sorted(fn.generics, key=lambda g: g.name)],
        "is_meta_method": fn.is_meta_method,
    }


def _docs_to_dict(docs: Mapping[bytes, str]) -> dict[str, str]:
    return {decode_name(k): docs[k] for k in sorted(docs)}


def record_to_dict(record: RecordDescriptor) -> dict[str, Any]:
    return {
        "type": type_to_dict(record.type),
        "fields": [
            {"name": decode_name(k), "type": type_to_dict(record.fields[k])} for k in sorted(record.fields)
        ],
        "methods": [function_to_dict(m) for m in record.methods],
        "functions": [function_to_dict(f) for f in record.functions],
        "is_user_data": record.is_user_data,
        "documentation": _docs_to_dict(record.documentation),
    }


def build_document(
    *,
    records: Iterable[RecordDescriptor],
    functions: Iterable[FunctionDescriptor],
    documentation: Mapping[bytes, str],
) -> dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "records": [record_to_dict(r) for r in sorted(records, key=lambda r: r.name)],
        "functions": [function_to_dict(f) for f in sorted(functions, key=lambda f: f.name)],
        "documentation": _docs_to_dict(documentation),
    }


def dumps_json(doc: dict[str, Any], *, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(doc, indent=2, sort_keys=True, ensure_ascii=False)
    return json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def dumps_msgpack(doc: dict[str, Any]) -> bytes:
    return msgpack.packb(doc, use_bin_type=True)


def loads_json(text: str | bytes) -> dict[str, Any]:
    try:
        obj = json.loads(text)
    except Exception as e:  # noqa: BLE001 - boundary parse
        raise DocumentError(f"failed to parse JSON document: {e}") from e
    if not isinstance(obj, dict):
        raise DocumentError("document must be an object")
    return obj


def loads_msgpack(payload: bytes) -> dict[str, Any]:
    try:
        obj = msgpack.unpackb(payload, raw=False)
    except Exception as e:  # noqa: BLE001 - boundary decoding error
        raise DocumentError(f"failed to decode MessagePack document: {e}") from e
    if not isinstance(obj, dict):
        raise DocumentError("document must be a map")
    return obj


def _list(obj: Mapping[str, Any], key: str, where: str) -> list[Any]:
    v = obj.get(key, [])
    if not isinstance(v, list):
        raise DocumentError(f"{where}: {key!r} must be a list")
    return v


def _str(obj: Mapping[str, Any], key: str, where: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise DocumentError(f"{where}: {key!r} must be a string")
    return v


def _obj(v: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(v, dict):
        raise DocumentError(f"{where}: expected an object")
    return v


def type_from_dict(obj: Any, where: str = "type") -> TypeDescriptor:
    obj = _obj(obj, where)
    kind = obj.get("kind")
    if kind in (GENERIC, NAMED):
        ident = _str(obj, "name", where)
        args = [type_from_dict(a, f"{where}.args") for a in _list(obj, "args", where)]
        return generic(ident, *args) if kind == GENERIC else named(ident, *args)
    if kind == ARRAY:
        return array_of(type_from_dict(obj.get("element"), f"{where}.element"))
    if kind == MAP:
        return map_of(
            type_from_dict(obj.get("key"), f"{where}.key"),
            type_from_dict(obj.get("value"), f"{where}.value"),
        )
    if kind == UNION:
        variants = [type_from_dict(v, f"{where}.variants") for v in _list(obj, "variants", where)]
        if len(variants) < 2:
            raise DocumentError(f"{where}: union needs at least two variants")
        return union_of(*variants)
    if kind == FUNCTION:
        return function_of(
            [type_from_dict(p, f"{where}.params") for p in _list(obj, "params", where)],
            [type_from_dict(r, f"{where}.returns") for r in _list(obj, "returns", where)],
        )
    if kind == PARAMETERS:
        members = []
        for m in _list(obj, "members", where):
            m = _obj(m, f"{where}.members")
            members.append((_str(m, "name", where), type_from_dict(m.get("type"), f"{where}.members")))
        try:
            return named_parameters(members)
        except ValueError as e:
            raise DocumentError(f"{where}: {e}") from e
    raise DocumentError(f"{where}: unknown kind {kind!r}")


def function_from_dict(obj: Any, where: str = "function") -> FunctionDescriptor:
    obj = _obj(obj, where)
    name = _str(obj, "name", where)
    where = f"{where} {name}"
    is_meta = obj.get("is_meta_method", False)
    if not isinstance(is_meta, bool):
        raise DocumentError(f"{where}: 'is_meta_method' must be a bool")
    fn = FunctionDescriptor(
        raw_name(name),
        tuple(type_from_dict(p, f"{where}.params") for p in _list(obj, "params", where)),
        tuple(type_from_dict(r, f"{where}.returns") for r in _list(obj, "returns", where)),
        is_meta,
    )
    declared = [type_from_dict(g, f"{where}.generics") for g in _list(obj, "generics", where)]
    fn.validate(declared)
    return fn


def _docs_from_dict(obj: Any, where: str) -> dict[bytes, str]:
    if obj is None:
        return {}
    obj = _obj(obj, where)
    out: dict[bytes, str] = {}
    for k, v in obj.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise DocumentError(f"{where}: documentation entries must be strings")
        out[raw_name(k)] = v
    return out


def record_from_dict(obj: Any, where: str = "record") -> RecordDescriptor:
    obj = _obj(obj, where)
    self_type = type_from_dict(obj.get("type"), f"{where}.type")
    where = f"{where} {self_type.name}"
    fields: dict[bytes, TypeDescriptor] = {}
    for f in _list(obj, "fields", where):
        f = _obj(f, f"{where}.fields")
        fname = raw_name(_str(f, "name", f"{where}.fields"))
        if fname in fields:
            raise DocumentError(f"{where}: duplicate field {fname!r}")
        fields[fname] = type_from_dict(f.get("type"), f"{where}.fields")
    is_user_data = obj.get("is_user_data", False)
    if not isinstance(is_user_data, bool):
        raise DocumentError(f"{where}: 'is_user_data' must be a bool")
    return RecordDescriptor(
        type=self_type,
        fields=fields,
        methods=tuple(function_from_dict(m, f"{where}.methods") for m in _list(obj, "methods", where)),
        functions=tuple(function_from_dict(m, f"{where}.functions") for m in _list(obj, "functions", where)),
        documentation=_docs_from_dict(obj.get("documentation"), f"{where}.documentation"),
        is_user_data=is_user_data,
    )


def load_document(doc: Any) -> LoadedDocument:
    doc = _obj(doc, "document")
    version = doc.get("version")
    if version != DOCUMENT_VERSION:
        raise DocumentError(f"unsupported document version: {version!r}")
    return LoadedDocument(
        records=[record_from_dict(r) for r in _list(doc, "records", "document")],
        functions=[function_from_dict(f) for f in _list(doc, "functions", "document")],
        documentation=_docs_from_dict(doc.get("documentation"), "document.documentation"),
    )
