"""Compound container (DOCX) codec."""

from .blueprints import (
    DEFAULT_BLUEPRINT,
    BlueprintStore,
    BuiltinBlueprintStore,
    ChainedBlueprintStore,
    DirectoryBlueprintStore,
    MappingBlueprintStore,
    default_blueprint,
)
from .reader import ContainerReader, read_core_properties
from .writer import ContainerWriter, bind_placeholders

__all__ = [
    "BlueprintStore",
    "BuiltinBlueprintStore",
    "ChainedBlueprintStore",
    "ContainerReader",
    "ContainerWriter",
    "DEFAULT_BLUEPRINT",
    "DirectoryBlueprintStore",
    "MappingBlueprintStore",
    "bind_placeholders",
    "default_blueprint",
    "read_core_properties",
]
