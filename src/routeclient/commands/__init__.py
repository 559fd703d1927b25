"""Built-in CLI sub-commands for routeclient.

* :mod:`~routeclient.commands.inspect` -- list the endpoints of a
  description file.
* :mod:`~routeclient.commands.call` -- invoke one endpoint and print the
  decoded result.

Each module exports a plain callback registered on the root app by
:func:`routeclient.app.main`.
"""
