"""API descriptions stored as JSON or YAML documents.

:func:`load_description` reads a document; :func:`build_api` turns it into
an API description. :func:`read_api` does both.
"""

from __future__ import annotations

from routeclient.api import Node
from routeclient.description.builder import TYPE_NAMES, build_api
from routeclient.description.loader import load_description


def read_api(source: str) -> Node:
    """Load and build the API description at *source* (path, URL or ``-``)."""
    return build_api(load_description(source))


__all__ = ["TYPE_NAMES", "build_api", "load_description", "read_api"]
