"""VICIdial non-agent API access: client, parser, field policy."""

from .client import ViciClient
from .errors import InvalidArgument, MissingParameterError, RemoteError, ViciError
from .parser import as_rows, parse_delimited, parse_positional

__all__ = [
    "ViciClient",
    "ViciError",
    "InvalidArgument",
    "MissingParameterError",
    "RemoteError",
    "as_rows",
    "parse_delimited",
    "parse_positional",
]
