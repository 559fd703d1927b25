"""The request accumulator built up while walking an API description.

:class:`Req` is a frozen Pydantic model. Every operation returns a *new*
instance, so a prefix shared by two alternatives, or by two concurrent calls
of the same endpoint, can never observe the other side's additions.

Ordering rules:

* path segments and query entries only ever append;
* query entries keep duplicates (repeated keys are meaningful);
* headers are keyed case-insensitively and the last write wins;
* setting a body replaces any previous body.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from routeclient.models import BaseUrl

# RFC 3986 pchar minus the unreserved set quote() never escapes.
_PATH_SAFE = "!$&'()*+,;=:@"
# Query components: leave out the separators '&', '=', '+' and '#'.
_QUERY_SAFE = "!$'()*,;:@/?"


class Req(BaseModel):
    """An in-progress HTTP request.

    Attributes:
        method: Unset until :meth:`finalize`.
        path: Unescaped path segments, in order.
        query: ``(name, value)`` entries; a ``None`` value is a bare flag.
        headers: ``(name, value)`` pairs, at most one per name.
        body: ``(encoded bytes, content type)`` or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    method: Optional[str] = None
    path: tuple[str, ...] = ()
    query: tuple[tuple[str, Optional[str]], ...] = ()
    headers: tuple[tuple[str, str], ...] = ()
    body: Optional[tuple[bytes, str]] = None

    def append_to_path(self, segment: str) -> Req:
        return self.model_copy(update={"path": (*self.path, segment)})

    def append_to_query(self, name: str, value: Optional[str]) -> Req:
        return self.model_copy(update={"query": (*self.query, (name, value))})

    def add_header(self, name: str, value: str) -> Req:
        """Set header *name*, replacing an earlier value for the same name."""
        lowered = name.lower()
        kept = tuple((n, v) for n, v in self.headers if n.lower() != lowered)
        return self.model_copy(update={"headers": (*kept, (name, value))})

    def set_body(self, content: bytes, content_type: str) -> Req:
        return self.model_copy(update={"body": (content, content_type)})

    def finalize(self, method: str) -> Req:
        return self.model_copy(update={"method": method.upper()})

    def header(self, name: str) -> Optional[str]:
        """Return the value of header *name* (case-insensitive), if set."""
        lowered = name.lower()
        for n, v in self.headers:
            if n.lower() == lowered:
                return v
        return None

    def query_values(self, name: str) -> list[Optional[str]]:
        """Return every query value recorded under *name*, in order."""
        return [v for n, v in self.query if n == name]

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    def render_path(self) -> str:
        """Escaped path, ``/a/b``; empty when no segment was added."""
        return "".join("/" + quote(segment, safe=_PATH_SAFE) for segment in self.path)

    def render_query(self) -> str:
        """Escaped query string without the leading ``?``.

        Flags render as ``name`` and empty values as ``name=``, so the two
        stay distinguishable.
        """
        parts: list[str] = []
        for name, value in self.query:
            key = quote(name, safe=_QUERY_SAFE)
            parts.append(key if value is None else f"{key}={quote(value, safe=_QUERY_SAFE)}")
        return "&".join(parts)

    def url(self, base_url: BaseUrl) -> str:
        """Absolute URL of this request against *base_url*."""
        target = f"{base_url}{self.render_path()}"
        query = self.render_query()
        return f"{target}?{query}" if query else target
