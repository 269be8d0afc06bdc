"""
Recognition and tokenization of ``/bench <action> <extra>`` comments.

Arguments are split on whitespace only; quoting and escaping are not
supported, so ``extra`` is the remaining words joined by single spaces.
"""
from dataclasses import dataclass

from benchbot.model import TriggerEvent

TRIGGER = "/bench"


@dataclass(frozen=True)
class Command:
    action: str = ""
    extra: str = ""


def is_applicable(event: TriggerEvent) -> bool:
    return (
        event.is_pull_request
        and event.action == "created"
        and event.body.startswith(TRIGGER)
    )


def parse_command(body: str) -> Command:
    tokens = body.split()
    action = tokens[1].strip() if len(tokens) > 1 else ""
    extra = " ".join(tokens[2:]).strip()
    return Command(action=action, extra=extra)
