from __future__ import annotations

import os
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RenderOptions:
    indent: str = "\t"
    comment_marker: str = "--"
    # Prefix for top-level declarations (`global record X`, `global f: ...`).
    global_prefix: str = "global "

    @classmethod
    def from_env(cls) -> "RenderOptions":
        """Return options with environment overrides applied.

        `TEALGEN_INDENT` is either `tab` or a number of spaces.
        `TEALGEN_COMMENT` overrides the line-comment marker.
        """
        opts = cls()
        indent = os.environ.get("TEALGEN_INDENT")
        if indent:
            if indent.strip().lower() == "tab":
                opts = replace(opts, indent="\t")
            else:
                try:
                    width = int(indent)
                except ValueError:
                    raise ValueError(f"TEALGEN_INDENT must be 'tab' or an integer, got {indent!r}") from None
                if width < 0:
                    raise ValueError("TEALGEN_INDENT must not be negative")
                opts = replace(opts, indent=" " * width)
        marker = os.environ.get("TEALGEN_COMMENT")
        if marker:
            opts = replace(opts, comment_marker=marker)
        return opts


DEFAULT_OPTIONS = RenderOptions()


def comment_lines(text: str | None, *, options: RenderOptions, indent: str = "") -> str:
    """Render documentation as line comments, one per line, each ending in a newline."""
    if text is None:
        return ""
    return "".join(f"{indent}{options.comment_marker}{line}\n" for line in text.splitlines())
