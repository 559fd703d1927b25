"""HTTP transport for derived clients.

:class:`Transport` is the contract derived endpoints call;
:class:`HttpxTransport` implements it on top of :class:`httpx.AsyncClient`.
"""

from routeclient.http.transport import HttpxTransport, Transport

__all__ = ["HttpxTransport", "Transport"]
