"""
Data models for program schemas.

These models describe the binary contract of an Anchor program: instruction
discriminators, argument layouts, account roles and account struct layouts.
They are built once from an IDL and never mutated afterwards.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


def to_snake_case(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, c in enumerate(name):
        if c.isupper() and i > 0 and name[i - 1] != "_":
            result.append("_")
        result.append(c.lower())
    return "".join(result)


def to_pascal_case(name: str) -> str:
    """Convert snake_case or camelCase to PascalCase."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def instruction_discriminator(name: str) -> bytes:
    """Anchor instruction discriminator: sha256("global:<snake_name>")[:8]."""
    return hashlib.sha256(f"global:{to_snake_case(name)}".encode()).digest()[:8]


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: sha256("account:<PascalName>")[:8]."""
    return hashlib.sha256(f"account:{to_pascal_case(name)}".encode()).digest()[:8]


@dataclass(frozen=True)
class FieldSpec:
    """A named, typed field of an argument list or struct."""
    name: str
    field_type: Any  # Raw IDL type: "u64" or {"option": "publicKey"} ...


@dataclass(frozen=True)
class AccountRole:
    """A named position in an instruction's account list."""
    name: str
    is_writable: bool = False
    is_signer: bool = False
    is_optional: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class InstructionSpec:
    """Specification for a single instruction in the program."""
    name: str
    discriminator: bytes
    accounts: Tuple[AccountRole, ...] = ()
    arguments: Tuple[FieldSpec, ...] = ()
    returns: Any = None
    description: Optional[str] = None

    @property
    def is_view(self) -> bool:
        """True when the instruction only reads state and declares a return type."""
        return self.returns is not None and not any(a.is_writable for a in self.accounts)

    @property
    def role_names(self) -> Tuple[str, ...]:
        return tuple(a.name for a in self.accounts)


@dataclass(frozen=True)
class StructSpec:
    """An account struct or a defined type."""
    name: str
    fields: Tuple[FieldSpec, ...] = ()
    discriminator: Optional[bytes] = None  # Only account structs carry one


@dataclass(frozen=True)
class ErrorSpec:
    """A named custom program error."""
    code: int
    name: str
    msg: str


@dataclass(frozen=True)
class ProgramSchema:
    """Complete, immutable binary contract of one program version."""
    version: str
    name: str
    instructions: Tuple[InstructionSpec, ...] = ()
    accounts: Tuple[StructSpec, ...] = ()
    types: Tuple[StructSpec, ...] = ()
    errors: Tuple[ErrorSpec, ...] = ()
    address: Optional[str] = None
    _by_name: Dict[str, InstructionSpec] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    _by_discriminator: Dict[bytes, InstructionSpec] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        for ix in self.instructions:
            if ix.discriminator in self._by_discriminator:
                other = self._by_discriminator[ix.discriminator]
                raise ValueError(
                    f"Discriminator collision between {other.name} and {ix.name}"
                )
            self._by_name[ix.name] = ix
            self._by_discriminator[ix.discriminator] = ix

    def get_instruction(self, name: str) -> Optional[InstructionSpec]:
        """Get instruction by name (snake_case or camelCase)."""
        return self._by_name.get(to_snake_case(name))

    def instruction_for_data(self, data: bytes) -> Optional[InstructionSpec]:
        """Find the instruction whose discriminator prefixes ``data``."""
        return self._by_discriminator.get(bytes(data[:8]))

    def get_account(self, name: str) -> Optional[StructSpec]:
        """Get an account struct by name, case-insensitively."""
        target = to_pascal_case(name).lower()
        for acc in self.accounts:
            if acc.name.lower() == target:
                return acc
        return None

    def get_type(self, name: str) -> Optional[StructSpec]:
        """Resolve a defined type; account structs are valid targets too."""
        for t in self.types:
            if t.name == name:
                return t
        return self.get_account(name)

    def error_for_code(self, code: Optional[int]) -> Optional[ErrorSpec]:
        for err in self.errors:
            if err.code == code:
                return err
        return None

    def view_instructions(self) -> Tuple[InstructionSpec, ...]:
        """All instructions eligible for read-only invocation."""
        return tuple(ix for ix in self.instructions if ix.is_view)

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            f"Program: {self.name} ({self.version})",
            f"Instructions: {len(self.instructions)}",
        ]
        for ix in self.instructions:
            flag = " [view]" if ix.is_view else ""
            lines.append(f"  - {ix.name}{flag}")
        return "\n".join(lines)
