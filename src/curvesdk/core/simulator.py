"""
Read-only invocation through transaction simulation.

View instructions are never submitted. They are wrapped in an ephemeral,
unsigned transaction, simulated by the node, and their result is rebuilt
from the simulation's return data or from the ``Program return:`` log line.
"""

import binascii
import logging
from base64 import b64decode, b64encode
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from solders.hash import Hash
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ..errors import DecodeFailure, SchemaMismatch, SimulationError, describe_error, extract_custom_code
from ..schema.codec import decode_exact
from ..schema.models import ProgramSchema
from .rpc import SolanaRpcClient
from .tx_builder import BuiltInstruction

logger = logging.getLogger(__name__)

ERROR_MESSAGE_MARKER = "Error Message: "


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a read-only invocation."""
    logs: Tuple[str, ...] = ()
    value: Any = None
    units_consumed: Optional[int] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None


def extract_error_detail(logs: Sequence[str], error: Any) -> str:
    """Text after the last ``Error Message: `` marker, else the raw error as JSON."""
    for line in reversed(logs):
        if ERROR_MESSAGE_MARKER in line:
            return line.split(ERROR_MESSAGE_MARKER, 1)[1]
    return describe_error(error)


def find_return_payload(value: dict, program_id: Pubkey) -> Optional[str]:
    """Base64 return payload of a simulation, if the program set one."""
    return_data = value.get("returnData")
    if return_data and return_data.get("data"):
        return return_data["data"][0]

    prefix = f"Program return: {program_id} "
    for line in value.get("logs") or []:
        if line.startswith(prefix):
            return line[len(prefix):]
    return None


class ReadOnlyInvoker:
    """
    Executes view instructions by simulation.

    The payer is only named as fee payer of the ephemeral transaction; no
    signature is produced and signature verification is disabled.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        schema: ProgramSchema,
        program_id: Pubkey,
        payer: Pubkey,
    ):
        self.rpc = rpc
        self.schema = schema
        self.program_id = program_id
        self.payer = payer

    async def invoke(self, ix: BuiltInstruction) -> SimulationResult:
        """
        Simulate ``ix`` and decode its return value.

        Returns:
            SimulationResult; ``value`` is None when the instruction is not a
            view or the program produced no return payload

        Raises:
            SimulationError: The program rejected the instruction
            DecodeFailure: The return payload does not match the declared type
        """
        ix_spec = self.schema.get_instruction(ix.name)
        if ix_spec is None:
            raise SchemaMismatch(
                f"Instruction {ix.name!r} is not part of schema {self.schema.version}"
            )
        if not ix_spec.is_view:
            logger.debug("readonly_skipped name=%s", ix.name)
            return SimulationResult()

        tx = await self._build_transaction(ix)
        logger.debug("readonly_simulate name=%s", ix.name)
        response = await self.rpc.simulate_transaction(
            tx,
            {
                "encoding": "base64",
                "sigVerify": False,
                "commitment": self.rpc.commitment,
            },
        )
        value = response["value"]
        logs = tuple(value.get("logs") or ())

        error = value.get("err")
        if error:
            detail = extract_error_detail(logs, error)
            program_error = self.schema.error_for_code(extract_custom_code(error))
            logger.warning("readonly_failed name=%s detail=%s", ix.name, detail)
            raise SimulationError(detail, logs=logs, error=error, program_error=program_error)

        payload = find_return_payload(value, self.program_id)
        if payload is None:
            return SimulationResult(logs=logs, units_consumed=value.get("unitsConsumed"))

        try:
            raw = b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeFailure(f"{ix.name}: return payload is not valid base64") from exc

        decoded = decode_exact(ix_spec.returns, raw, self.schema.get_type)
        return SimulationResult(logs=logs, value=decoded, units_consumed=value.get("unitsConsumed"))

    async def _build_transaction(self, ix: BuiltInstruction) -> str:
        """Single-instruction v0 transaction with placeholder signatures, base64-encoded."""
        latest = await self.rpc.get_latest_blockhash()
        message = MessageV0.try_compile(
            self.payer,
            [ix.to_instruction()],
            [],
            Hash.from_string(latest["blockhash"]),
        )
        signatures = [Signature.default()] * message.header.num_required_signatures
        tx = VersionedTransaction.populate(message, signatures)
        return b64encode(bytes(tx)).decode()
