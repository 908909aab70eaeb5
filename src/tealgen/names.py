"""Name fragments used to build printable type names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from .errors import DecodingError

RawName = Union[bytes, str]

LITERAL = "literal"
SYMBOL = "symbol"


@dataclass(frozen=True)
class NamePart:
    text: str
    kind: str = LITERAL

    @classmethod
    def literal(cls, text: str) -> "NamePart":
        return cls(text, LITERAL)

    @classmethod
    def symbol(cls, text: str) -> "NamePart":
        return cls(text, SYMBOL)

    @property
    def is_symbol(self) -> bool:
        return self.kind == SYMBOL


def compose(parts: Iterable[NamePart]) -> str:
    """Concatenate name parts verbatim.

    Symbols are plain separators; nothing is escaped or translated, so
    `compose(a + b) == compose(a) + compose(b)` for any two sequences.
    """
    return "".join(p.text for p in parts)


def raw_name(name: RawName) -> bytes:
    """Normalize a str/bytes name into the raw bytes used as lookup key."""
    if isinstance(name, bytes):
        return name
    if isinstance(name, (bytearray, memoryview)):
        return bytes(name)
    if isinstance(name, str):
        return name.encode("utf-8")
    raise TypeError(f"name must be str or bytes, got {type(name).__name__}")


def decode_name(name: bytes) -> str:
    try:
        return name.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodingError(f"name {name!r} is not valid UTF-8: {e}") from e
