"""
Schema module describing the program's binary contract.
"""

from .models import (
    AccountRole,
    ErrorSpec,
    FieldSpec,
    InstructionSpec,
    ProgramSchema,
    StructSpec,
    account_discriminator,
    instruction_discriminator,
)
from .idl_parser import IDLParser
from .registry import SchemaRegistry, default_registry, get_schema

__all__ = [
    "AccountRole",
    "ErrorSpec",
    "FieldSpec",
    "InstructionSpec",
    "ProgramSchema",
    "StructSpec",
    "account_discriminator",
    "instruction_discriminator",
    "IDLParser",
    "SchemaRegistry",
    "default_registry",
    "get_schema",
]
