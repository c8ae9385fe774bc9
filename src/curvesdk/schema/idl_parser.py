"""
IDL Parser for Anchor programs.

Parses Anchor IDL JSON documents into immutable ``ProgramSchema`` objects.
Both the legacy (``isMut``/``isSigner``) and the newer (``writable``/
``signer``) account formats are accepted.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

from .models import (
    AccountRole,
    ErrorSpec,
    FieldSpec,
    InstructionSpec,
    ProgramSchema,
    StructSpec,
    account_discriminator,
    instruction_discriminator,
    to_snake_case,
)


class IDLParser:
    """
    Parser for Anchor IDL files.

    Extracts instruction signatures, account roles, account struct layouts,
    defined types and program errors. Names are normalized to snake_case.
    """

    def parse_file(self, path: Union[str, Path], version: str) -> ProgramSchema:
        """Parse an IDL file from disk."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"IDL file not found: {path}")

        with open(path, "r") as f:
            idl_data = json.load(f)

        return self.parse(idl_data, version)

    def parse(self, idl: Dict, version: str) -> ProgramSchema:
        """Parse an IDL dictionary into the schema tagged ``version``."""
        instructions = tuple(self._parse_instruction(ix) for ix in idl.get("instructions", []))
        accounts = tuple(self._parse_struct(acc, is_account=True) for acc in idl.get("accounts", []))
        types = tuple(self._parse_struct(t, is_account=False) for t in idl.get("types", []))
        errors = tuple(
            ErrorSpec(code=e["code"], name=e["name"], msg=e.get("msg", e["name"]))
            for e in idl.get("errors", [])
        )

        return ProgramSchema(
            version=version,
            name=idl.get("name", "unknown"),
            instructions=instructions,
            accounts=accounts,
            types=types,
            errors=errors,
            address=idl.get("address") or idl.get("metadata", {}).get("address"),
        )

    def _parse_instruction(self, ix_data: Dict) -> InstructionSpec:
        """Parse a single instruction from IDL."""
        name = ix_data.get("name", "unknown")

        accounts = tuple(
            self._parse_instruction_account(acc_data)
            for acc_data in ix_data.get("accounts", [])
        )
        arguments = tuple(self._parse_field(arg) for arg in ix_data.get("args", []))

        # New-format IDLs ship the discriminator, old ones derive it from the name
        discriminator = ix_data.get("discriminator")
        if isinstance(discriminator, list):
            discriminator = bytes(discriminator)
        else:
            discriminator = instruction_discriminator(name)

        return InstructionSpec(
            name=to_snake_case(name),
            discriminator=discriminator,
            accounts=accounts,
            arguments=arguments,
            returns=self._normalize_type(ix_data.get("returns")),
            description=ix_data.get("docs", [""])[0] if ix_data.get("docs") else None,
        )

    def _parse_instruction_account(self, acc_data: Dict) -> AccountRole:
        """Parse an account from an instruction's account list."""
        if "accounts" in acc_data:
            raise ValueError(f"Nested account groups are not supported: {acc_data.get('name')}")

        # Old format: isMut, isSigner, isOptional
        # New format: writable, signer, optional
        return AccountRole(
            name=to_snake_case(acc_data.get("name", "unknown")),
            is_writable=bool(acc_data.get("writable", acc_data.get("isMut", False))),
            is_signer=bool(acc_data.get("signer", acc_data.get("isSigner", False))),
            is_optional=bool(acc_data.get("optional", acc_data.get("isOptional", False))),
            description=acc_data.get("docs", [""])[0] if acc_data.get("docs") else None,
        )

    def _parse_field(self, field_data: Dict) -> FieldSpec:
        """Parse an argument or struct field."""
        return FieldSpec(
            name=to_snake_case(field_data.get("name", "arg")),
            field_type=self._normalize_type(field_data.get("type", "unknown")),
        )

    def _parse_struct(self, data: Dict, is_account: bool) -> StructSpec:
        """Parse an account struct or defined type."""
        name = data.get("name", "unknown")
        body = data.get("type", {})
        if body.get("kind", "struct") != "struct":
            raise ValueError(f"Only struct types are supported: {name}")

        discriminator = None
        if is_account:
            discriminator = data.get("discriminator")
            discriminator = bytes(discriminator) if isinstance(discriminator, list) else account_discriminator(name)

        return StructSpec(
            name=name,
            fields=tuple(self._parse_field(f) for f in body.get("fields", [])),
            discriminator=discriminator,
        )

    def _normalize_type(self, field_type: Any) -> Any:
        """Map new-format type spellings onto the ones the codec expects."""
        if field_type is None or isinstance(field_type, str):
            return field_type
        if isinstance(field_type, dict) and "defined" in field_type:
            defined = field_type["defined"]
            # New format: {"defined": {"name": "X"}}
            if isinstance(defined, dict):
                return {"defined": defined["name"]}
            return {"defined": defined}
        if isinstance(field_type, dict):
            return {key: self._normalize_type(value) for key, value in field_type.items()}
        if isinstance(field_type, list):
            return [self._normalize_type(v) for v in field_type]
        return field_type
