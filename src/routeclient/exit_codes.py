"""Numeric process exit codes used by the ``routeclient`` command line.

Each constant maps to one error category and is referenced by the matching
:class:`~routeclient.exceptions.RouteClientError` subclass. Library callers
never see these numbers; they only matter when the CLI turns an exception
into a process exit status.

Example::

    $ routeclient call api.yaml "GET /books/{isbn}" --arg isbn=missing
    $ echo $?
    4   # EXIT_UNSUCCESSFUL_STATUS -- the server answered with a rejected status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_DESCRIPTION_ERROR = 3
"""The API description could not be loaded or is structurally invalid."""

EXIT_UNSUCCESSFUL_STATUS = 4
"""The server answered with a status outside the endpoint's accepted set."""

EXIT_DECODE_FAILURE = 5
"""The response body or its content type could not be decoded."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_ENCODING_UNAVAILABLE = 7
"""A request body could not be encoded with any declared media type."""
