"""Derive descriptors from Python types and callables.

Any class can describe itself explicitly:

- `teal_type()` (classmethod) returns its TypeDescriptor,
- `teal_record()` (classmethod) returns its full RecordDescriptor,
- `teal_function()` returns a FunctionDescriptor for a callable object.

Classes without these hooks are described by reflection over their
annotations, methods and docstrings.
"""

from __future__ import annotations

import collections.abc
import inspect
import logging
import types as pytypes
import typing
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from .errors import UnsupportedTypeError
from .function import FunctionDescriptor
from .record import RecordBuilder, RecordDescriptor
from .types import (
    ANY,
    BOOLEAN,
    INTEGER,
    NIL,
    NUMBER,
    STRING,
    TypeDescriptor,
    array_of,
    function_of,
    generic,
    map_of,
    named,
    named_parameters,
    union_of,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class Describable(Protocol):
    @classmethod
    def teal_type(cls) -> TypeDescriptor: ...


@runtime_checkable
class RecordProducer(Protocol):
    @classmethod
    def teal_record(cls) -> RecordDescriptor: ...


@runtime_checkable
class FunctionProducer(Protocol):
    def teal_function(self) -> FunctionDescriptor: ...


_SCALARS: dict[Any, TypeDescriptor] = {
    str: STRING,
    bytes: STRING,
    int: INTEGER,
    float: NUMBER,
    bool: BOOLEAN,
    type(None): NIL,
    None: NIL,
    Any: ANY,
    object: ANY,
}

_SEQUENCES = {list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Iterable, collections.abc.Set}
_MAPPINGS = {dict, collections.abc.Mapping, collections.abc.MutableMapping}

# Python dunder -> Lua metamethod.
_META_METHODS = {
    "__add__": "__add",
    "__sub__": "__sub",
    "__mul__": "__mul",
    "__truediv__": "__div",
    "__floordiv__": "__idiv",
    "__mod__": "__mod",
    "__pow__": "__pow",
    "__neg__": "__unm",
    "__and__": "__band",
    "__or__": "__bor",
    "__xor__": "__bxor",
    "__invert__": "__bnot",
    "__lshift__": "__shl",
    "__rshift__": "__shr",
    "__eq__": "__eq",
    "__lt__": "__lt",
    "__le__": "__le",
    "__len__": "__len",
    "__call__": "__call",
    "__str__": "__tostring",
    "__getitem__": "__index",
    "__setitem__": "__newindex",
}


def type_of(tp: Any) -> TypeDescriptor:
    """Map a Python type or annotation to a TypeDescriptor."""
    if isinstance(tp, TypeDescriptor):
        return tp
    if isinstance(tp, TypeVar):
        return generic(tp.__name__)
    if isinstance(tp, str):
        # Unresolved forward reference.
        return named(tp)
    try:
        scalar = _SCALARS.get(tp)
    except TypeError:
        scalar = None
    if scalar is not None:
        return scalar

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Union or origin is pytypes.UnionType:
        # Every Teal value may be nil, so Optional[X] is just X.
        members = [type_of(a) for a in args if a is not type(None)]
        if not members:
            return NIL
        return union_of(*members)
    if origin is typing.Annotated:
        for meta in args[1:]:
            if isinstance(meta, TypeDescriptor):
                return meta
        return type_of(args[0])
    if origin in _SEQUENCES:
        if origin is tuple and args and (len(args) != 2 or args[1] is not Ellipsis):
            return array_of(union_of(*(type_of(a) for a in args)))
        return array_of(type_of(args[0]) if args else ANY)
    if origin in _MAPPINGS:
        if len(args) == 2:
            return map_of(type_of(args[0]), type_of(args[1]))
        return map_of(ANY, ANY)
    if origin is collections.abc.Callable:
        if not args:
            return function_of([ANY], [ANY])
        params, ret = args
        param_types = [ANY] if params is Ellipsis else [type_of(p) for p in params]
        return function_of(param_types, _returns_of(ret))
    if origin is not None and isinstance(origin, type):
        return named(_teal_name(origin), *(type_of(a) for a in args))

    if isinstance(tp, type):
        hook = getattr(tp, "teal_type", None)
        if callable(hook):
            return hook()
        if tp in _SEQUENCES:
            return array_of(ANY)
        if tp in _MAPPINGS:
            return map_of(ANY, ANY)
        return named(_teal_name(tp))

    raise UnsupportedTypeError(f"no descriptor mapping for {tp!r}")


def _teal_name(cls: type) -> str:
    return getattr(cls, "__teal_name__", None) or cls.__name__


def _returns_of(ret: Any) -> tuple[TypeDescriptor, ...]:
    if ret is None or ret is type(None) or ret is inspect.Signature.empty:
        return ()
    if typing.get_origin(ret) is tuple:
        args = typing.get_args(ret)
        if args and not (len(args) == 2 and args[1] is Ellipsis):
            # Fixed-size tuples map onto Lua multiple returns.
            return tuple(type_of(a) for a in args)
    return (type_of(ret),)


def _hints(fn: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(fn)
    except Exception:  # noqa: BLE001 - unresolvable forward refs fall back to raw annotations
        return dict(getattr(fn, "__annotations__", {}))


def describe_function(
    fn: Callable[..., Any],
    name: str | bytes | None = None,
    *,
    is_meta_method: bool = False,
    skip_self: bool = False,
    named_params: bool = False,
) -> FunctionDescriptor:
    """Build a FunctionDescriptor from a Python callable's signature.

    With `named_params=True` the parameter names are kept in the declaration
    (`function(a: string, b: integer)`).
    """
    hook = getattr(fn, "teal_function", None)
    if callable(hook):
        return hook()

    sig = inspect.signature(fn)
    hints = _hints(fn)
    params: list[tuple[str, TypeDescriptor]] = []
    for i, (pname, p) in enumerate(sig.parameters.items()):
        if skip_self and i == 0:
            continue
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue
        params.append((pname, type_of(hints.get(pname, Any))))
    ret = hints.get("return", sig.return_annotation)
    returns = _returns_of(ret)

    if named_params and params:
        param_types: tuple[TypeDescriptor, ...] = (named_parameters(params),)
    else:
        param_types = tuple(t for _, t in params)
    return FunctionDescriptor(
        name if name is not None else fn.__name__,
        param_types,
        returns,
        is_meta_method,
    )


def describe_record(cls: type) -> RecordDescriptor:
    """Describe a class as a record (explicit `teal_record()` wins)."""
    hook = getattr(cls, "teal_record", None)
    if callable(hook):
        return hook()

    builder = RecordBuilder(type_of(cls), is_user_data=getattr(cls, "__teal_user_data__", True))
    doc = cls.__dict__.get("__doc__")
    if doc and not _is_autodoc(cls, doc):
        builder.document_type(inspect.cleandoc(doc))

    for fname, hint in _hints(cls).items():
        if fname.startswith("_") or typing.get_origin(hint) is typing.ClassVar:
            continue
        builder.add_field(fname, type_of(hint))

    for attr, raw in cls.__dict__.items():
        if isinstance(raw, (staticmethod, classmethod)):
            if attr.startswith("_") or attr in ("teal_type", "teal_record"):
                continue
            fn = raw.__func__
            builder.add_function(attr, *_shape(fn, skip_self=isinstance(raw, classmethod)))
            member = attr
        elif inspect.isfunction(raw):
            fn = raw
            if attr in _META_METHODS:
                # Generated dunders (e.g. dataclass __eq__) carry no annotations.
                if "return" not in fn.__annotations__:
                    continue
                member = _META_METHODS[attr]
                builder.add_meta_method(member, *_shape(fn, skip_self=True))
            elif attr.startswith("_"):
                continue
            else:
                member = attr
                builder.add_method(member, *_shape(fn, skip_self=True))
        else:
            continue
        if fn.__doc__:
            builder.document(member, inspect.cleandoc(fn.__doc__))

    record = builder.build()
    logger.debug("described record %s from %s", record.name, cls.__qualname__)
    return record


def _is_autodoc(cls: type, doc: str) -> bool:
    # dataclasses synthesize "Name(field: type, ...)" when no docstring is given.
    return doc.startswith(f"{cls.__name__}(")


def _shape(fn: Callable[..., Any], *, skip_self: bool) -> tuple[tuple[TypeDescriptor, ...], tuple[TypeDescriptor, ...]]:
    d = describe_function(fn, skip_self=skip_self)
    return d.params, d.returns
