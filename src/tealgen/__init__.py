"""tealgen: describe exposed host APIs and render Teal declaration files."""

from __future__ import annotations

from . import errors, types
from .describe import Describable, describe_function, describe_record, type_of
from .function import FunctionDescriptor
from .names import NamePart, compose
from .options import RenderOptions
from .record import RecordBuilder, RecordDescriptor
from .types import TypeDescriptor, collect_generics
from .walker import TypeWalker

__all__ = [
    "Describable",
    "FunctionDescriptor",
    "NamePart",
    "RecordBuilder",
    "RecordDescriptor",
    "RenderOptions",
    "TypeDescriptor",
    "TypeWalker",
    "collect_generics",
    "compose",
    "describe_function",
    "describe_record",
    "errors",
    "type_of",
    "types",
]
