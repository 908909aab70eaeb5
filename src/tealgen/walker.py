"""Registry of exposed records/functions and the declaration renderer."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Mapping

from .describe import FunctionProducer, describe_function, describe_record
from .document import (
    build_document,
    dumps_json,
    dumps_msgpack,
    load_document,
    loads_json,
    loads_msgpack,
)
from .errors import ConflictingRegistrationError, WalkerStateError
from .function import FunctionDescriptor
from .names import RawName, raw_name
from .options import RenderOptions
from .record import RecordDescriptor

logger = logging.getLogger(__name__)

ACCUMULATING = "accumulating"
RENDERED = "rendered"


def _normalize_docs(documentation: Mapping[RawName, str] | None) -> dict[bytes, str]:
    if not documentation:
        return {}
    return {raw_name(k): str(v) for k, v in documentation.items()}


class TypeWalker:
    """Collects descriptors and renders them as Teal declarations.

    The walker starts out accumulating. The first successful render (text,
    JSON or MessagePack) moves it to the terminal `rendered` state; a render
    that raises leaves it accumulating. Once rendered, registrations raise
    WalkerStateError while rendering stays repeatable.
    Registration is serialized by a lock, and output is ordered by name, so
    the order in which producers register never shows up in the result.
    """

    def __init__(self, *, options: RenderOptions | None = None):
        self._lock = threading.Lock()
        self._records: dict[str, RecordDescriptor] = {}
        self._functions: dict[bytes, FunctionDescriptor] = {}
        self._docs: dict[bytes, str] = {}
        self._state = ACCUMULATING
        self.options = options

    @property
    def state(self) -> str:
        return self._state

    @property
    def records(self) -> list[RecordDescriptor]:
        return [self._records[k] for k in sorted(self._records)]

    @property
    def functions(self) -> list[FunctionDescriptor]:
        return [self._functions[k] for k in sorted(self._functions)]

    @property
    def documentation(self) -> dict[bytes, str]:
        return dict(self._docs)

    def _check_accumulating(self) -> None:
        if self._state != ACCUMULATING:
            raise WalkerStateError("walker has already rendered; create a new TypeWalker to register more")

    def register(self, *items: Any) -> "TypeWalker":
        """Register records, functions, describable classes or callables.

        Registering an equal descriptor twice is a no-op; a different
        descriptor under an already registered name is rejected.
        """
        resolved = [self._resolve(item) for item in items]
        with self._lock:
            self._check_accumulating()
            for item in resolved:
                if isinstance(item, RecordDescriptor):
                    self._add(self._records, item.name, item, "record")
                else:
                    self._add(self._functions, item.name, item, "function")
        return self

    def process_type(self, cls: type) -> "TypeWalker":
        return self.register(describe_record(cls))

    def _resolve(self, item: Any) -> RecordDescriptor | FunctionDescriptor:
        if isinstance(item, (RecordDescriptor, FunctionDescriptor)):
            return item
        if isinstance(item, type):
            return describe_record(item)
        if isinstance(item, FunctionProducer):
            return item.teal_function()
        if callable(item):
            return describe_function(item)
        raise TypeError(f"cannot register {type(item).__name__}; expected a descriptor, class or callable")

    def _add(self, table: dict, key: Any, item: Any, what: str) -> None:
        existing = table.get(key)
        if existing is None:
            table[key] = item
            logger.debug("registered %s %r", what, key)
            return
        if existing == item:
            logger.debug("%s %r already registered", what, key)
            return
        raise ConflictingRegistrationError(f"{what} {key!r} is already registered with a different shape")

    def document(self, name: RawName, text: str) -> "TypeWalker":
        with self._lock:
            self._check_accumulating()
            raw = raw_name(name)
            if raw in self._docs:
                self._docs[raw] = f"{self._docs[raw]}\n{text}"
            else:
                self._docs[raw] = text
        return self

    def add_documentation(self, documentation: Mapping[RawName, str]) -> "TypeWalker":
        docs = _normalize_docs(documentation)
        with self._lock:
            self._check_accumulating()
            self._docs.update(docs)
        return self

    @contextmanager
    def _rendering(self):
        """Hold the registry while rendering; mark it rendered only on success."""
        with self._lock:
            if self._state != RENDERED:
                logger.debug(
                    "rendering %d record(s) and %d function(s)", len(self._records), len(self._functions)
                )
            yield self.records, self.functions, dict(self._docs)
            self._state = RENDERED

    def render_all(
        self,
        documentation: Mapping[RawName, str] | None = None,
        *,
        options: RenderOptions | None = None,
    ) -> str:
        """Render every record, then every function, as declaration text.

        Global documentation applies to top-level functions and to record type
        names; record members are documented only by the record itself.
        """
        opts = options or self.options or RenderOptions.from_env()
        with self._rendering() as (records, functions, docs):
            docs.update(_normalize_docs(documentation))
            blocks = []
            for r in records:
                type_key = raw_name(r.name)
                type_doc = {type_key: docs[type_key]} if type_key in docs else None
                blocks.append(r.render(type_doc, options=opts, prefix=opts.global_prefix))
            blocks.extend(fn.render(None, docs, options=opts, prefix=opts.global_prefix) for fn in functions)
        if not blocks:
            return ""
        return "\n\n".join(blocks) + "\n"

    def to_document(self) -> dict[str, Any]:
        with self._rendering() as (records, functions, docs):
            return build_document(records=records, functions=functions, documentation=docs)

    def render_all_to_json(self, *, pretty: bool = False) -> str:
        return dumps_json(self.to_document(), pretty=pretty)

    def render_all_to_msgpack(self) -> bytes:
        return dumps_msgpack(self.to_document())

    @classmethod
    def from_document(cls, doc: Any, *, options: RenderOptions | None = None) -> "TypeWalker":
        loaded = load_document(doc)
        walker = cls(options=options)
        walker.register(*loaded.records, *loaded.functions)
        walker.add_documentation(loaded.documentation)
        return walker

    @classmethod
    def from_json(cls, text: str | bytes, *, options: RenderOptions | None = None) -> "TypeWalker":
        return cls.from_document(loads_json(text), options=options)

    @classmethod
    def from_msgpack(cls, payload: bytes, *, options: RenderOptions | None = None) -> "TypeWalker":
        return cls.from_document(loads_msgpack(payload), options=options)
