"""Program log events: ``Program log: <Event>: Key=Value, ...`` lines."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from solders.pubkey import Pubkey

LOG_PREFIX = "Program log: "

# event name -> expected keys, in emitted order
EVENT_FIELDS = {
    "TokenPurchase": ("Customer", "ETH", "Tokens", "ReferredBy"),
    "TokenSell": ("Customer", "Tokens", "ETH"),
    "Reinvestment": ("Customer", "ETH", "Tokens"),
    "Withdraw": ("Customer", "ETH"),
    "Masternode": ("Customer", "Consumer", "ETH", "Bonus"),
    "Transfer": ("From", "To", "Tokens"),
}

_EVENT_RE = re.compile(r"^(\w+): (.*)$")


@dataclass(frozen=True)
class ProgramEvent:
    name: str
    fields: Dict[str, Union[int, Pubkey, str]] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]


def _convert(value: str) -> Union[int, Pubkey, str]:
    if value.isdigit():
        return int(value)
    try:
        return Pubkey.from_string(value)
    except ValueError:
        return value


def parse_event(line: str) -> Union[ProgramEvent, None]:
    """Parse one log line; None if it is not a known event."""
    if not line.startswith(LOG_PREFIX):
        return None
    match = _EVENT_RE.match(line[len(LOG_PREFIX):])
    if not match or match.group(1) not in EVENT_FIELDS:
        return None

    name, body = match.groups()
    fields = {}
    for part in body.split(", "):
        key, sep, value = part.partition("=")
        if not sep:
            return None
        fields[key] = _convert(value)

    if tuple(fields) != EVENT_FIELDS[name]:
        return None
    return ProgramEvent(name=name, fields=fields)


def parse_events(logs: Sequence[str]) -> List[ProgramEvent]:
    """All program events in ``logs``, in emission order."""
    events = []
    for line in logs:
        event = parse_event(line)
        if event is not None:
            events.append(event)
    return events
