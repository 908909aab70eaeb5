"""User-defined record descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .errors import DuplicateMemberError
from .function import Documentation, FunctionDescriptor, lookup_doc
from .names import RawName, decode_name, raw_name
from .options import DEFAULT_OPTIONS, RenderOptions, comment_lines
from .types import TypeDescriptor


@dataclass(frozen=True)
class RecordDescriptor:
    type: TypeDescriptor
    fields: Mapping[bytes, TypeDescriptor] = field(default_factory=dict)
    methods: tuple[FunctionDescriptor, ...] = ()
    functions: tuple[FunctionDescriptor, ...] = ()
    documentation: Mapping[bytes, str] = field(default_factory=dict)
    is_user_data: bool = False

    def __post_init__(self) -> None:
        fields_by_name: dict[bytes, TypeDescriptor] = {}
        for k, t in dict(self.fields).items():
            raw = raw_name(k)
            if raw in fields_by_name:
                raise DuplicateMemberError(f"record {self.type.name}: duplicate field {raw!r}")
            fields_by_name[raw] = t
        object.__setattr__(self, "fields", fields_by_name)
        # Members are kept in render order so equal records compare equal.
        object.__setattr__(self, "methods", tuple(sorted(self.methods, key=lambda f: f.name)))
        object.__setattr__(self, "functions", tuple(sorted(self.functions, key=lambda f: f.name)))
        object.__setattr__(
            self, "documentation", {raw_name(k): str(v) for k, v in dict(self.documentation).items()}
        )

        seen: set[bytes] = set(fields_by_name)
        for fn in (*self.methods, *self.functions):
            if fn.name in seen:
                raise DuplicateMemberError(f"record {self.type.name}: duplicate member {fn.name!r}")
            seen.add(fn.name)

    @property
    def name(self) -> str:
        return self.type.name

    @property
    def exposes_meta_methods(self) -> bool:
        return any(fn.is_meta_method for fn in (*self.methods, *self.functions))

    def member_types(self) -> Iterable[TypeDescriptor]:
        """Every type that appears in a field or function signature."""
        yield from self.fields.values()
        for fn in (*self.methods, *self.functions):
            yield from fn.params
            yield from fn.returns

    def render(
        self,
        documentation: Documentation | None = None,
        *,
        options: RenderOptions = DEFAULT_OPTIONS,
        prefix: str = "",
    ) -> str:
        docs: dict[bytes, str] = dict(self.documentation)
        if documentation:
            docs.update(documentation)
        ind = options.indent

        out: list[str] = []
        head_doc = comment_lines(lookup_doc(docs, raw_name(self.name)), options=options)
        out.append(f"{head_doc}{prefix}record {self.name}")
        if self.is_user_data:
            out.append(f"{ind}userdata")
        for fname in sorted(self.fields):
            doc = comment_lines(lookup_doc(docs, fname), options=options, indent=ind)
            out.append(f"{doc}{ind}{decode_name(fname)}: {self.fields[fname].name}")
        for fn in self.methods:
            out.append(fn.render(self.type, docs, options=options, indent=ind))
        for fn in self.functions:
            out.append(fn.render(None, docs, options=options, indent=ind))
        out.append("end")
        return "\n".join(out)


class RecordBuilder:
    """Incrementally collect the members of one record.

    Name collisions are reported as soon as the member is added.
    """

    def __init__(self, type: TypeDescriptor, *, is_user_data: bool = False):
        self.type = type
        self.is_user_data = is_user_data
        self._fields: dict[bytes, TypeDescriptor] = {}
        self._methods: list[FunctionDescriptor] = []
        self._functions: list[FunctionDescriptor] = []
        self._docs: dict[bytes, str] = {}
        self._names: set[bytes] = set()

    def _claim(self, name: RawName) -> bytes:
        raw = raw_name(name)
        if raw in self._names:
            raise DuplicateMemberError(f"record {self.type.name}: duplicate member {raw!r}")
        self._names.add(raw)
        return raw

    def add_field(self, name: RawName, type: TypeDescriptor) -> "RecordBuilder":
        self._fields[self._claim(name)] = type
        return self

    def add_method(
        self,
        name: RawName,
        params: Iterable[TypeDescriptor] = (),
        returns: Iterable[TypeDescriptor] = (),
    ) -> "RecordBuilder":
        self._methods.append(FunctionDescriptor(self._claim(name), tuple(params), tuple(returns)))
        return self

    def add_meta_method(
        self,
        name: RawName,
        params: Iterable[TypeDescriptor] = (),
        returns: Iterable[TypeDescriptor] = (),
    ) -> "RecordBuilder":
        self._methods.append(
            FunctionDescriptor(self._claim(name), tuple(params), tuple(returns), is_meta_method=True)
        )
        return self

    def add_function(
        self,
        name: RawName,
        params: Iterable[TypeDescriptor] = (),
        returns: Iterable[TypeDescriptor] = (),
        *,
        is_meta_method: bool = False,
    ) -> "RecordBuilder":
        self._functions.append(
            FunctionDescriptor(self._claim(name), tuple(params), tuple(returns), is_meta_method)
        )
        return self

    def document(self, name: RawName, text: str) -> "RecordBuilder":
        raw = raw_name(name)
        if raw in self._docs:
            self._docs[raw] = f"{self._docs[raw]}\n{text}"
        else:
            self._docs[raw] = text
        return self

    def document_type(self, text: str) -> "RecordBuilder":
        return self.document(self.type.name, text)

    def build(self) -> RecordDescriptor:
        return RecordDescriptor(
            type=self.type,
            fields=dict(self._fields),
            methods=tuple(self._methods),
            functions=tuple(self._functions),
            documentation=dict(self._docs),
            is_user_data=self.is_user_data,
        )
