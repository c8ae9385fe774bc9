"""
Client-side protocol layer for the bonding-curve token program.
"""

from .client import CurveClient
from .config import ClientConfig
from .core.batch import BatchTransactionAssembler, Transaction
from .core.simulator import ReadOnlyInvoker, SimulationResult
from .core.tx_builder import BuiltInstruction, InstructionBuilder, TokenMetadata
from .errors import (
    AccountNotFound,
    AddressDerivationFailure,
    CurveSdkError,
    DecodeFailure,
    RpcError,
    SchemaMismatch,
    SimulationError,
)
from .parser import InstructionDecoder, RawInstruction, parse_events
from .schema import SchemaRegistry, get_schema

__version__ = "0.2.0"

__all__ = [
    "CurveClient",
    "ClientConfig",
    "BatchTransactionAssembler",
    "Transaction",
    "ReadOnlyInvoker",
    "SimulationResult",
    "BuiltInstruction",
    "InstructionBuilder",
    "TokenMetadata",
    "AccountNotFound",
    "AddressDerivationFailure",
    "CurveSdkError",
    "DecodeFailure",
    "RpcError",
    "SchemaMismatch",
    "SimulationError",
    "InstructionDecoder",
    "RawInstruction",
    "parse_events",
    "SchemaRegistry",
    "get_schema",
]
