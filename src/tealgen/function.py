"""Exported function descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .errors import DecodingError, GenericsMismatchError
from .names import RawName, decode_name, raw_name
from .options import DEFAULT_OPTIONS, RenderOptions, comment_lines
from .types import TypeDescriptor, collect_generics

Documentation = Mapping[bytes, str]


def lookup_doc(documentation: Documentation | None, name: bytes) -> str | None:
    if not documentation:
        return None
    return documentation.get(name)


def render_generics(generics: Iterable[TypeDescriptor]) -> str:
    names = sorted(g.name for g in generics)
    if not names:
        return ""
    return f"<{', '.join(names)}>"


@dataclass(frozen=True)
class FunctionDescriptor:
    """Name and shape of one callable.

    `generics` is derived from `params` and `returns`; it cannot be passed in.
    """

    name: bytes
    params: tuple[TypeDescriptor, ...] = ()
    returns: tuple[TypeDescriptor, ...] = ()
    is_meta_method: bool = False
    generics: frozenset[TypeDescriptor] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", raw_name(self.name))
        object.__setattr__(self, "params", tuple(self.params))
        object.__setattr__(self, "returns", tuple(self.returns))
        object.__setattr__(self, "generics", frozenset(collect_generics(self.params + self.returns)))

    @classmethod
    def new(
        cls,
        name: RawName,
        params: Iterable[TypeDescriptor] = (),
        returns: Iterable[TypeDescriptor] = (),
        *,
        is_meta_method: bool = False,
    ) -> "FunctionDescriptor":
        return cls(raw_name(name), tuple(params), tuple(returns), is_meta_method)

    @property
    def text_name(self) -> str:
        return decode_name(self.name)

    def validate(self, declared: Iterable[TypeDescriptor] | None = None) -> None:
        """Check that `declared` (default: own generics) covers every generic in use."""
        have = set(self.generics if declared is None else declared)
        missing = collect_generics(self.params + self.returns) - have
        if missing:
            names = ", ".join(sorted(g.name for g in missing))
            raise GenericsMismatchError(f"function {self.name!r}: undeclared generic(s): {names}")

    def render(
        self,
        self_type: TypeDescriptor | None = None,
        documentation: Documentation | None = None,
        *,
        options: RenderOptions = DEFAULT_OPTIONS,
        indent: str = "",
        prefix: str = "",
    ) -> str:
        try:
            name = decode_name(self.name)
        except DecodingError as e:
            raise DecodingError(f"cannot render function: {e}") from e

        receiver = [self_type.name] if self_type is not None else []
        params = ", ".join(receiver + [p.name for p in self.params])
        returns = ", ".join(r.name for r in self.returns)
        doc = comment_lines(lookup_doc(documentation, self.name), options=options, indent=indent)
        meta = "metamethod " if self.is_meta_method else ""
        return f"{doc}{indent}{prefix}{meta}{name}: function{render_generics(self.generics)}({params}): ({returns})"
