"""Listing output templates.

A template is plain text with ``%`` placeholders, each resolved through a
fixed table of field accessors. Unknown placeholders are rejected when the
template is compiled, before any listing is fetched.

==========  ===========================================
``%p``      full path
``%n``      name (last path component)
``%d``      depth below the listed directory
``%b``      size in bytes
``%s``      human-readable size
``%t``      server modification time
``%c``      client modification time
``%r``      revision
``%M``      mime type
``%i``      icon
``%e``      thumbnail available (``true``/``false``)
``%y``      type (``d`` or ``f``)
``%%``      literal ``%``
==========  ===========================================

The escapes ``\\n`` and ``\\t`` are also recognised.
"""

from typing import Callable, Union

from .exceptions import DbxFormatError
from .models import RemoteEntry

Accessor = Callable[[RemoteEntry, int], str]

PLACEHOLDERS: dict[str, Accessor] = {
    "p": lambda e, d: e.path,
    "n": lambda e, d: e.name,
    "d": lambda e, d: str(d),
    "b": lambda e, d: str(e.bytes),
    "s": lambda e, d: e.human_size,
    "t": lambda e, d: e.modified or "",
    "c": lambda e, d: e.client_mtime or "",
    "r": lambda e, d: e.rev or "",
    "M": lambda e, d: e.mime_type or "",
    "i": lambda e, d: e.icon or "",
    "e": lambda e, d: "true" if e.thumb_exists else "false",
    "y": lambda e, d: "d" if e.is_dir else "f",
}

ESCAPES = {"n": "\n", "t": "\t", "\\": "\\"}

DEFAULT_LONG_FORMAT = "%y %10b %t %p"

Segment = Union[str, Accessor]


class ListingFormatter:
    """A compiled listing template."""

    def __init__(self, template: str):
        """Compile a template.

        Args:
            template: Template string

        Raises:
            DbxFormatError: If the template uses an unknown placeholder
        """
        self.template = template
        self._segments = self._compile(template)

    @staticmethod
    def _compile(template: str) -> list[Segment]:
        segments: list[Segment] = []
        literal: list[str] = []
        i = 0
        while i < len(template):
            ch = template[i]
            if ch in "%\\":
                if i + 1 >= len(template):
                    raise DbxFormatError(f"Dangling '{ch}' at end of format")
                nxt = template[i + 1]
                if ch == "%":
                    if nxt == "%":
                        literal.append("%")
                    elif nxt.isdigit() or nxt == "-":
                        # Width spec such as %10b or %-20n
                        j = i + 1
                        while j < len(template) and (
                            template[j].isdigit() or template[j] == "-"
                        ):
                            j += 1
                        if j >= len(template) or template[j] not in PLACEHOLDERS:
                            raise DbxFormatError(
                                f"Unknown placeholder '%{template[i + 1 : j + 1]}'"
                            )
                        spec = template[i + 1 : j]
                        try:
                            width = int(spec)
                        except ValueError:
                            raise DbxFormatError(
                                f"Invalid width '{spec}' in format"
                            ) from None
                        if literal:
                            segments.append("".join(literal))
                            literal = []
                        segments.append(_padded(PLACEHOLDERS[template[j]], width))
                        i = j + 1
                        continue
                    elif nxt in PLACEHOLDERS:
                        if literal:
                            segments.append("".join(literal))
                            literal = []
                        segments.append(PLACEHOLDERS[nxt])
                    else:
                        raise DbxFormatError(f"Unknown placeholder '%{nxt}'")
                else:
                    if nxt not in ESCAPES:
                        raise DbxFormatError(f"Unknown escape '\\{nxt}'")
                    literal.append(ESCAPES[nxt])
                i += 2
                continue
            literal.append(ch)
            i += 1
        if literal:
            segments.append("".join(literal))
        return segments

    def format(self, entry: RemoteEntry, depth: int = 0) -> str:
        """Render one entry."""
        return "".join(
            seg if isinstance(seg, str) else seg(entry, depth)
            for seg in self._segments
        )


def _padded(accessor: Accessor, width: int) -> Accessor:
    def render(entry: RemoteEntry, depth: int) -> str:
        value = accessor(entry, depth)
        return value.ljust(-width) if width < 0 else value.rjust(width)

    return render
