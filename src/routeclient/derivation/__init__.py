"""Derivation of callable clients from API descriptions.

* :mod:`~routeclient.derivation.engine` -- :func:`client`, :func:`derive`
  and the :class:`Endpoint` callables they produce.
* :mod:`~routeclient.derivation.params` -- parameter naming and signatures.
* :mod:`~routeclient.derivation.policy` -- accepted statuses and response
  decoding.
"""

from routeclient.derivation.engine import Endpoint, RequestPlan, client, derive, iter_endpoints
from routeclient.derivation.policy import DecodingPolicy, accepted_statuses, decoding_policy

__all__ = [
    "DecodingPolicy",
    "Endpoint",
    "RequestPlan",
    "accepted_statuses",
    "client",
    "decoding_policy",
    "derive",
    "iter_endpoints",
]
