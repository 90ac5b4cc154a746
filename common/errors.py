"""Exceptions raised by escopen modules.

All of them carry a human readable ``message``. Passing ``log=True`` also
records the message on the root logger when the exception is built.
Remote/transport failures are not wrapped: they surface as the httpx
exceptions raised by the connector.
"""

import logging

mylogger = logging.getLogger()


class EscError(Exception):
    """Base exception with a message."""
    def __init__(self, message="An environment error occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            mylogger.error(message)


class UserInputError(EscError):
    """Bad command input, detected before any remote call."""


class PropertyPathError(UserInputError):
    """A property path could not be parsed."""
    def __init__(self, text: str, cause: str, log=False):
        self.text = text
        self.cause = cause
        super().__init__(f"invalid property path {text}: {cause}", log=log)


class UnknownFormatError(UserInputError):
    def __init__(self, fmt: str, log=False):
        self.format = fmt
        super().__init__(f'unknown output format "{fmt}"', log=log)


class IncompatibleFormatError(UserInputError):
    def __init__(self, fmt: str, log=False):
        self.format = fmt
        super().__init__(f"output format '{fmt}' may not be used with a property path", log=log)


class EnvironmentRefError(UserInputError):
    """An environment reference is not of the form [<org>/]<env>."""


class LifetimeError(UserInputError):
    """A lifetime could not be parsed (expected e.g. 2h, 1h30m, 15m)."""


class ConfigurationError(EscError):
    """Missing or invalid settings (backend URL, access token...)."""


class OperationCancelled(EscError):
    def __init__(self, message="operation cancelled", log=False):
        super().__init__(message, log=log)
