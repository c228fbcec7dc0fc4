"""
Line formatting and parsing for the HGD protocol.

Requests are a verb followed by pipe-separated arguments. Responses start
with a status ("ok" or "err") followed by pipe-separated fields:

    ls            ->  ok|2
    user|bob|pw   ->  err|bad user

Everything here is pure: no I/O, no state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Union

from .constants import FIELD_SEPARATOR, STATUS_OK, Verb
from .errors import MalformedResponse

_FORBIDDEN_CHARS = (FIELD_SEPARATOR, "\r", "\n")


class ResponseStatus(Enum):
    """Status of a response line."""

    OK = "ok"
    ERR = "err"


@dataclass
class Response:
    """A parsed status line."""

    status: ResponseStatus
    fields: list[str] = field(default_factory=list)
    line: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ResponseStatus.OK

    @property
    def message(self) -> str:
        """Text after the first separator, or the whole line if there is none."""
        index = self.line.find(FIELD_SEPARATOR)
        return self.line[index + 1 :]


def format_command(verb: Union[Verb, str], args: Iterable[object] = ()) -> str:
    """
    Build a request line (without terminator).

    Args:
        verb: Command verb
        args: Arguments, converted with str()

    Returns:
        Pipe-joined command text

    Raises:
        ValueError: If an argument contains a separator or line break
    """
    parts = [verb.value if isinstance(verb, Verb) else str(verb)]
    for arg in args:
        text = str(arg)
        if any(ch in text for ch in _FORBIDDEN_CHARS):
            raise ValueError(f"Argument may not contain '|' or line breaks: {text!r}")
        parts.append(text)
    return FIELD_SEPARATOR.join(parts)


def parse_response(line: str) -> Response:
    """
    Parse a status line.

    Raises:
        MalformedResponse: If the line is too short to carry a status
    """
    if len(line) < 2:
        raise MalformedResponse(f"Response too short: {line!r}", line)

    status = ResponseStatus.OK if line[:2].lower() == STATUS_OK else ResponseStatus.ERR
    parts = line.split(FIELD_SEPARATOR)
    return Response(status=status, fields=parts[1:], line=line)
