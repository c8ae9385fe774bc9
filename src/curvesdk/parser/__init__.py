"""Decoding of captured instructions and program log events."""

from .events import ProgramEvent, parse_event, parse_events
from .ix_decoder import DecodedInstruction, InstructionDecoder, RawInstruction

__all__ = [
    "ProgramEvent",
    "parse_event",
    "parse_events",
    "DecodedInstruction",
    "InstructionDecoder",
    "RawInstruction",
]
