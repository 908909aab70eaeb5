"""Structural type descriptors and generics collection."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, Iterator

from .errors import CyclicTypeError
from .names import NamePart, compose

GENERIC = "generic"
NAMED = "named"
ARRAY = "array"
MAP = "map"
UNION = "union"
FUNCTION = "function"
PARAMETERS = "parameters"

KINDS = (GENERIC, NAMED, ARRAY, MAP, UNION, FUNCTION, PARAMETERS)

# Builtin scalars lead a union in this order; everything else follows by name.
_UNION_PRECEDENCE = ("string", "number", "integer", "boolean", "thread", "userdata", "any", "nil")


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """One node of a type graph.

    Only the payload matching `kind` is populated:

    - generic/named: `ident` (+ optional `args`, rendered `Name<A, B>`)
    - array: `element`
    - map: `key`, `value`
    - union: `variants`
    - function: `params`, `returns`
    - parameters: `members` as `(name, type)` pairs

    Identity is structural: two descriptors are equal when their rendered
    names are equal.
    """

    kind: str
    ident: str = ""
    args: tuple["TypeDescriptor", ...] = ()
    element: "TypeDescriptor | None" = None
    key: "TypeDescriptor | None" = None
    value: "TypeDescriptor | None" = None
    variants: frozenset["TypeDescriptor"] = frozenset()
    params: tuple["TypeDescriptor", ...] = ()
    returns: tuple["TypeDescriptor", ...] = ()
    members: tuple[tuple[str, "TypeDescriptor"], ...] = ()

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"unknown type kind: {self.kind!r}")

    @property
    def is_generic(self) -> bool:
        return self.kind == GENERIC

    @property
    def parts(self) -> tuple[NamePart, ...]:
        return tuple(_parts(self, set()))

    @cached_property
    def name(self) -> str:
        return compose(_parts(self, set()))

    def children(self) -> Iterator["TypeDescriptor"]:
        """Yield every direct structural child."""
        yield from self.args
        if self.element is not None:
            yield self.element
        if self.key is not None:
            yield self.key
        if self.value is not None:
            yield self.value
        yield from self.variants
        yield from self.params
        yield from self.returns
        for _, t in self.members:
            yield t

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeDescriptor):
            return NotImplemented
        return self is other or self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"TypeDescriptor({self.kind}, {self.name!r})"


def _join(items: Iterable[TypeDescriptor], sep: str, active: set[int]) -> list[NamePart]:
    out: list[NamePart] = []
    for i, t in enumerate(items):
        if i:
            out.append(NamePart.symbol(sep))
        out.extend(_parts(t, active))
    return out


def _parts(t: TypeDescriptor, active: set[int]) -> list[NamePart]:
    if id(t) in active:
        raise CyclicTypeError(f"type {t.kind}:{t.ident or '?'} references itself")
    active.add(id(t))
    try:
        if t.kind in (GENERIC, NAMED):
            out = [NamePart.literal(t.ident)]
            if t.args:
                out.append(NamePart.symbol("<"))
                out.extend(_join(t.args, ", ", active))
                out.append(NamePart.symbol(">"))
            return out
        if t.kind == ARRAY:
            return [NamePart.symbol("{"), *_parts(t.element, active), NamePart.symbol("}")]
        if t.kind == MAP:
            return [
                NamePart.symbol("{"),
                *_parts(t.key, active),
                NamePart.symbol(" : "),
                *_parts(t.value, active),
                NamePart.symbol("}"),
            ]
        if t.kind == UNION:
            out = []
            for i, (_, vparts) in enumerate(_ranked(t.variants, active)):
                if i:
                    out.append(NamePart.symbol(" | "))
                out.extend(vparts)
            return out
        if t.kind == FUNCTION:
            return [
                NamePart.literal("function"),
                NamePart.symbol("("),
                *_join(t.params, ", ", active),
                NamePart.symbol("): ("),
                *_join(t.returns, ", ", active),
                NamePart.symbol(")"),
            ]
        out = []
        for i, (member, mt) in enumerate(t.members):
            if i:
                out.append(NamePart.symbol(", "))
            out.append(NamePart.literal(member))
            out.append(NamePart.symbol(": "))
            out.extend(_parts(mt, active))
        return out
    finally:
        active.discard(id(t))


def _variant_rank(name: str) -> tuple[int, str]:
    if name in _UNION_PRECEDENCE:
        return _UNION_PRECEDENCE.index(name), name
    return len(_UNION_PRECEDENCE), name


def _ranked(
    variants: Iterable[TypeDescriptor], active: set[int]
) -> list[tuple[TypeDescriptor, list[NamePart]]]:
    keyed = [(v, _parts(v, active)) for v in variants]
    keyed.sort(key=lambda item: _variant_rank(compose(item[1])))
    return keyed


def ordered_variants(variants: Iterable[TypeDescriptor]) -> list[TypeDescriptor]:
    """Return union members in canonical render order."""
    return [v for v, _ in _ranked(variants, set())]


def generic(ident: str, *args: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor(GENERIC, ident=ident, args=tuple(args))


def named(ident: str, *args: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor(NAMED, ident=ident, args=tuple(args))


def array_of(element: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor(ARRAY, element=element)


def map_of(key: TypeDescriptor, value: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor(MAP, key=key, value=value)


def union_of(*variants: TypeDescriptor) -> TypeDescriptor:
    """Build a union; nested unions are flattened and duplicates collapse.

    A union that ends up with a single member is that member.
    """
    members: list[TypeDescriptor] = []
    for v in variants:
        if v.kind == UNION:
            members.extend(v.variants)
        else:
            members.append(v)
    if not members:
        raise ValueError("union requires at least one variant")

    # Members sharing a rendered name collapse into one; keep the one carrying
    # the most generics so the result does not depend on argument order.
    by_name: dict[str, TypeDescriptor] = {}
    for v in members:
        kept = by_name.get(v.name)
        if kept is None or _generic_key(v) > _generic_key(kept):
            by_name[v.name] = v
    if len(by_name) == 1:
        return next(iter(by_name.values()))
    return TypeDescriptor(UNION, variants=frozenset(by_name.values()))


def _generic_key(t: TypeDescriptor) -> tuple[int, tuple[str, ...]]:
    names = sorted(g.name for g in collect_generics([t]))
    return len(names), tuple(names)


def function_of(params: Iterable[TypeDescriptor] = (), returns: Iterable[TypeDescriptor] = ()) -> TypeDescriptor:
    return TypeDescriptor(FUNCTION, params=tuple(params), returns=tuple(returns))


def named_parameters(members: Iterable[tuple[str, TypeDescriptor]]) -> TypeDescriptor:
    """Positional parameters that carry a name in the declaration only."""
    members = tuple((str(n), t) for n, t in members)
    if not members:
        raise ValueError("named parameters require at least one member")
    seen: set[str] = set()
    for n, _ in members:
        if n in seen:
            raise ValueError(f"duplicate parameter name {n}")
        seen.add(n)
    return TypeDescriptor(PARAMETERS, members=members)


STRING = named("string")
NUMBER = named("number")
INTEGER = named("integer")
BOOLEAN = named("boolean")
NIL = named("nil")
ANY = named("any")
THREAD = named("thread")
USERDATA = named("userdata")


def collect_generics(types: Iterable[TypeDescriptor]) -> set[TypeDescriptor]:
    """Collect every generic-kind node reachable from `types`.

    Generic nodes are added and still explored. Visited nodes are tracked by
    identity so self-referencing graphs terminate.
    """
    found: set[TypeDescriptor] = set()
    seen: set[int] = set()
    stack = list(types)
    while stack:
        t = stack.pop()
        if id(t) in seen:
            continue
        seen.add(id(t))
        if t.is_generic:
            found.add(t)
        stack.extend(t.children())
    return found
