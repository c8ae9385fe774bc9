"""
Versioned schema registry.

Each deployed layout of the program is a tagged, immutable ``ProgramSchema``.
New layouts are registered under a new tag; an existing tag is never
overwritten.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import SchemaMismatch
from .idl_parser import IDLParser
from .models import ProgramSchema

logger = logging.getLogger(__name__)

IDL_DIR = Path(__file__).parent / "idls"

# tag -> bundled IDL file
BUNDLED_VERSIONS = {
    "v1": "v1.json",
    "v2": "v2.json",
}


class SchemaRegistry:
    """Tagged set of program schemas, selected by version at construction time."""

    def __init__(self):
        self._versions: Dict[str, ProgramSchema] = {}

    def register(self, schema: ProgramSchema) -> ProgramSchema:
        """Add a schema under its version tag."""
        if schema.version in self._versions:
            raise ValueError(f"Schema version already registered: {schema.version}")
        self._versions[schema.version] = schema
        logger.debug(
            "schema_registered version=%s instructions=%d",
            schema.version, len(schema.instructions),
        )
        return schema

    def register_idl(self, idl: Dict, version: str) -> ProgramSchema:
        """Parse an IDL dictionary and register it under ``version``."""
        return self.register(IDLParser().parse(idl, version))

    def get(self, version: str) -> ProgramSchema:
        """Get a schema by tag."""
        try:
            return self._versions[version]
        except KeyError:
            raise SchemaMismatch(
                f"Unknown schema version {version!r}; known: {', '.join(self.versions())}"
            ) from None

    def find(self, version: str) -> Optional[ProgramSchema]:
        return self._versions.get(version)

    def versions(self) -> List[str]:
        return sorted(self._versions)

    def __contains__(self, version: str) -> bool:
        return version in self._versions


_default: Optional[SchemaRegistry] = None


def default_registry() -> SchemaRegistry:
    """Registry preloaded with the bundled program versions."""
    global _default
    if _default is None:
        registry = SchemaRegistry()
        parser = IDLParser()
        for version, filename in BUNDLED_VERSIONS.items():
            registry.register(parser.parse_file(IDL_DIR / filename, version))
        _default = registry
    return _default


def get_schema(version: str = "v2") -> ProgramSchema:
    """Bundled schema for ``version``."""
    return default_registry().get(version)
