"""Build the Python parameter list of a derived endpoint.

Each argument-introducing node contributes one :class:`Param`, in root-to-leaf
order. The collected parameters become the endpoint's ``__signature__`` so
that :func:`inspect.signature`, IDEs and the CLI all see the same argument
list.

**Mapping rules:**

* ``Capture`` -- required, annotated with the capture type.
* ``Header`` and ``QueryParam`` -- ``Optional[T]``, default ``None``.
* ``QueryParams`` -- ``Sequence[T]``, default ``()``.
* ``QueryFlag`` -- ``bool``, default ``False``.
* ``ReqBody`` -- required ``body``.
* ``Raw`` -- a required ``method`` appended last.

Python forbids a required parameter after a defaulted one, so a default is
only kept when every later parameter has one too. Earlier optional
parameters stay keyword-or-positional but become required.
"""

from __future__ import annotations

import inspect
import keyword
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from routeclient.api import Node, NodeKind

EMPTY = inspect.Parameter.empty


# ---------------------------------------------------------------------------
# Name sanitisation
# ---------------------------------------------------------------------------

# Matches any character that is not alphanumeric or underscore.
_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_param_name(name: str) -> str:
    """Convert a capture, header or query name to a valid Python identifier.

    CamelCase boundaries become underscores, the result is lower-cased,
    separators and invalid characters collapse to single underscores, a
    leading digit is prefixed with ``_`` and keywords get a trailing ``_``.

    Example::

        >>> sanitize_param_name("bookId")
        'book_id'
        >>> sanitize_param_name("X-Request-ID")
        'x_request_id'
        >>> sanitize_param_name("from")
        'from_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = result.lower().replace("-", "_").replace(".", "_")
    result = _INVALID_IDENT_RE.sub("_", result)
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = "param"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def unique_name(base: str, taken: Iterable[str]) -> str:
    """Return *base*, or *base* with the lowest free ``_N`` suffix (from 2)."""
    used = set(taken)
    if base not in used:
        return base
    n = 2
    while f"{base}_{n}" in used:
        n += 1
    return f"{base}_{n}"


# ---------------------------------------------------------------------------
# Parameter descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Param:
    """One parameter of a derived endpoint.

    Attributes:
        name: The Python parameter name.
        original_name: The name as written in the API description
            (``"body"`` / ``"method"`` for the synthetic parameters).
        kind: The node kind that introduced the parameter.
        annotation: The annotation reported by the signature.
        default: The natural default, or :data:`EMPTY` when required.
        value_type: The declared element/value type (used by the CLI to
            coerce text arguments).
    """

    name: str
    original_name: str
    kind: NodeKind
    annotation: Any
    default: Any = EMPTY
    value_type: Any = str

    @property
    def required(self) -> bool:
        return self.default is EMPTY


def param_for_node(node: Node, taken: Iterable[str]) -> Optional[Param]:
    """Return the :class:`Param` a node introduces, or ``None`` if it takes none."""
    kind = node.kind
    if kind == NodeKind.CAPTURE:
        annotation, default = node.type, EMPTY
    elif kind in (NodeKind.HEADER, NodeKind.QUERY_PARAM):
        annotation, default = Optional[node.type], None
    elif kind == NodeKind.QUERY_PARAMS:
        annotation, default = Sequence[node.type], ()
    elif kind == NodeKind.QUERY_FLAG:
        return Param(
            name=unique_name(sanitize_param_name(node.name), taken),
            original_name=node.name,
            kind=kind,
            annotation=bool,
            default=False,
            value_type=bool,
        )
    elif kind == NodeKind.REQ_BODY:
        return Param(
            name=unique_name("body", taken),
            original_name="body",
            kind=kind,
            annotation=node.type,
            value_type=node.type,
        )
    elif kind == NodeKind.RAW:
        return Param(
            name=unique_name("method", taken),
            original_name="method",
            kind=kind,
            annotation=str,
        )
    else:
        return None

    return Param(
        name=unique_name(sanitize_param_name(node.name), taken),
        original_name=node.name,
        kind=kind,
        annotation=annotation,
        default=default,
        value_type=node.type,
    )


def build_signature(params: Sequence[Param], return_annotation: Any = EMPTY) -> inspect.Signature:
    """Build an :class:`inspect.Signature` from *params*.

    Defaults are dropped from every parameter that is followed by a required
    one.
    """
    keep_default = [True] * len(params)
    seen_required = False
    for idx in range(len(params) - 1, -1, -1):
        if seen_required:
            keep_default[idx] = False
        if params[idx].required:
            seen_required = True

    return inspect.Signature(
        [
            inspect.Parameter(
                p.name,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                default=p.default if keep else EMPTY,
                annotation=p.annotation,
            )
            for p, keep in zip(params, keep_default)
        ],
        return_annotation=return_annotation,
    )
