"""Well-known program ids and derivation seeds."""

from solders.pubkey import Pubkey

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
MPL_TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
SYSVAR_RENT_PUBKEY = Pubkey.from_string("SysvarRent111111111111111111111111111111111")
SYSVAR_INSTRUCTIONS_PUBKEY = Pubkey.from_string("Sysvar1nstructions1111111111111111111111111")

# Default deployment of the bonding-curve program
DEFAULT_PROGRAM_ID = Pubkey.from_string("8yCmCyhDsLzof54Pbuj2dBxAKSyLosdFcR7Aov894NJk")

# Seeds must match the deployed program byte for byte
PROGRAM_SEED = b"program"
USER_SEED = b"users"
MINT_SEED = b"mint"
METADATA_SEED = b"metadata"

# Largest serialized transaction a cluster accepts
PACKET_DATA_SIZE = 1232
