import os
from dataclasses import dataclass

DEFAULT_TIMEOUT = 5.0
DEFAULT_MOCK_HOST = "127.0.0.1"


@dataclass
class NamedValueFromEnvironment:
    """A setting read from an environment variable, named after that
    variable in error messages."""

    _envvar: str
    _value: str

    def __init__(self, envvar: str):
        self._envvar = envvar
        self._value = os.environ.get(envvar) or ""

    def __str__(self):
        return self.value

    @property
    def name(self) -> str:
        return self._envvar

    @property
    def value(self) -> str:
        return self._value


def default_timeout() -> float:
    """Returns the default request timeout in seconds, read from the
    HTTPCALL_TIMEOUT environment variable when it is set.

    Raises:
        ValueError: if the environment variable is not a positive number.
    """
    timeout = NamedValueFromEnvironment("HTTPCALL_TIMEOUT")
    if not timeout.value:
        return DEFAULT_TIMEOUT
    try:
        seconds = float(timeout.value)
    except ValueError:
        raise ValueError(
            f"invalid {timeout.name}: {timeout.value!r} is not a number"
        ) from None
    if seconds <= 0:
        raise ValueError(f"invalid {timeout.name}: {timeout.value!r} must be positive")
    return seconds


def default_mock_host() -> str:
    """Returns the host mock responders bind to, read from the
    HTTPCALL_MOCK_HOST environment variable when it is set."""
    host = NamedValueFromEnvironment("HTTPCALL_MOCK_HOST")
    return host.value or DEFAULT_MOCK_HOST
