"""Exceptions raised by the VICIdial gateway and request validation."""

from __future__ import annotations


class ViciError(Exception):
    """Base exception for vicidash errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidArgument(ViciError, ValueError):
    """A gateway call could not be built (e.g. no function name)."""

    pass


class RemoteError(ViciError):
    """VICIdial answered with an ERROR body or the transport failed."""

    pass


class MissingParameterError(ViciError):
    """A required request parameter is missing."""

    pass
