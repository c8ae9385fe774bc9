"""
Program-derived address helpers.

The bump search itself is delegated to ``Pubkey.find_program_address``; the
helpers here only fix the seed layout the deployed program expects.
"""

from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from ..constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    METADATA_SEED,
    MINT_SEED,
    MPL_TOKEN_METADATA_PROGRAM_ID,
    PROGRAM_SEED,
    TOKEN_2022_PROGRAM_ID,
    USER_SEED,
)
from ..errors import AddressDerivationFailure

MAX_SEEDS = 16
MAX_SEED_LEN = 32


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derive an off-curve address and its bump seed.

    Args:
        seeds: Seed byte strings, in program order
        program_id: Program that owns the derived address

    Returns:
        (address, bump) pair

    Raises:
        AddressDerivationFailure: If the seeds are invalid or no bump works
    """
    seeds = [bytes(s) for s in seeds]
    # One slot is reserved for the bump byte
    if len(seeds) >= MAX_SEEDS:
        raise AddressDerivationFailure(f"Too many seeds: {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise AddressDerivationFailure(f"Seed longer than {MAX_SEED_LEN} bytes: {seed!r}")

    try:
        address, bump = Pubkey.find_program_address(seeds, program_id)
    except Exception as exc:
        raise AddressDerivationFailure(
            f"No viable bump for seeds under {program_id}: {exc}"
        ) from exc
    return address, bump


def find_program_pda(program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Program state PDA: seeds = ["program"]."""
    return derive([PROGRAM_SEED], program_id)


def find_user_pda(owner: Pubkey, program_id: Pubkey) -> Tuple[Pubkey, int]:
    """User state PDA: seeds = ["users", owner]."""
    return derive([USER_SEED, bytes(owner)], program_id)


def find_mint_pda(program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Token mint PDA: seeds = ["mint"]."""
    return derive([MINT_SEED], program_id)


def find_metadata_pda(mint: Pubkey) -> Tuple[Pubkey, int]:
    """Metaplex metadata PDA, derived under the token-metadata program."""
    return derive(
        [METADATA_SEED, bytes(MPL_TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        MPL_TOKEN_METADATA_PROGRAM_ID,
    )


def find_user_ata(mint: Pubkey, owner: Pubkey) -> Tuple[Pubkey, int]:
    """Token-2022 associated token account of ``owner`` for ``mint``."""
    return derive(
        [bytes(owner), bytes(TOKEN_2022_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
