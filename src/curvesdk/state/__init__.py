"""On-chain account state."""

from .accounts import ProgramState, UserState, decode_account
