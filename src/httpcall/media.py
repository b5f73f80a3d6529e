"""Media type parsing for request bodies."""

import codecs
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from httpcall.error import InvalidMediaType

# RFC 7230 token characters, plus braces.
_TOKEN = r"[a-zA-Z0-9!#$%&'*+.^_`{|}~-]+"
_QUOTED = r'"(?:[^"\\]|\\.)*"'

_TYPE_SUBTYPE = re.compile(rf"({_TOKEN})/({_TOKEN})")
_PARAMETER = re.compile(rf";\s*(?:({_TOKEN})=({_TOKEN}|{_QUOTED}))?")
_BARE_VALUE = re.compile(_TOKEN)


@dataclass(frozen=True)
class MediaType:
    """A parsed media type such as ``text/plain; charset=utf-8``."""

    type: str
    subtype: str
    parameters: Tuple[Tuple[str, str], ...] = field(default=())

    @classmethod
    def parse(cls, value: str) -> "MediaType":
        """Parse a media type string.

        Raises:
            InvalidMediaType: if the string is not a well-formed media type.
        """
        text = value.strip()
        match = _TYPE_SUBTYPE.match(text)
        if match is None:
            raise InvalidMediaType(value)

        parameters = []
        pos = match.end()
        while pos < len(text):
            param = _PARAMETER.match(text, pos)
            if param is None:
                raise InvalidMediaType(value)
            pos = param.end()
            name, param_value = param.group(1), param.group(2)
            if name is None:
                continue  # empty parameter, e.g. a trailing ';'
            if param_value.startswith('"'):
                param_value = re.sub(r"\\(.)", r"\1", param_value[1:-1])
            parameters.append((name.lower(), param_value))

        return cls(match.group(1).lower(), match.group(2).lower(), tuple(parameters))

    @property
    def charset(self) -> Optional[str]:
        for name, value in self.parameters:
            if name == "charset":
                return value
        return None

    @property
    def encoding(self) -> str:
        """The encoding to apply to text bodies of this media type."""
        charset = self.charset
        if charset is None:
            return "utf-8"
        try:
            return codecs.lookup(charset).name
        except LookupError:
            return "utf-8"

    def encode(self, body: str) -> bytes:
        # unmappable characters become "?"
        return body.encode(self.encoding, errors="replace")

    def __str__(self):
        params = "".join(f"; {name}={_quote(value)}" for name, value in self.parameters)
        return f"{self.type}/{self.subtype}{params}"


def _quote(value: str) -> str:
    if _BARE_VALUE.fullmatch(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
