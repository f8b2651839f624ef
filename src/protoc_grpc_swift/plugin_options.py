"""Options of the protoc plugin, passed by protoc as a single parameter string.

The parameter is a comma separated list of ``Key=Value`` pairs, e.g.
``Visibility=Public,Client=false,ExtraModuleImports=Foo``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from protoc_grpc_swift.code_gen_parser import ModuleNames
from protoc_grpc_swift.errors import (
    GenerationError,
    GeneratorError,
    InvalidParameterValue,
    UnknownParameter,
    UnsupportedParameter,
)
from protoc_grpc_swift.models import AccessLevel, FileNaming
from protoc_grpc_swift.module_mappings import ProtoFileToModuleMappings


def parse_parameter(parameter: Optional[str]) -> List[Tuple[str, str]]:
    """Split a parameter string into (key, value) pairs.

    Empty entries are skipped. An entry without ``=`` is a key with an empty
    value.
    """
    if not parameter:
        return []

    pairs = []
    for part in parameter.split(","):
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep:
            pairs.append((part, ""))
        else:
            pairs.append((key.strip(), value.strip()))
    return pairs


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidParameterValue(key, value)


def _non_empty(key: str, value: str) -> str:
    if not value:
        raise InvalidParameterValue(key, value)
    return value


@dataclass
class GeneratorOptions:
    access_level: AccessLevel = AccessLevel.INTERNAL
    access_level_on_imports: bool = False
    generate_server: bool = True
    generate_client: bool = True
    file_naming: FileNaming = FileNaming.FULL_PATH
    extra_module_imports: List[str] = field(default_factory=list)
    # (os, version), e.g. ("macOS", "15.0")
    availability_overrides: List[Tuple[str, str]] = field(default_factory=list)
    module_names: ModuleNames = field(default_factory=ModuleNames)
    module_mappings_path: Optional[str] = None

    @classmethod
    def parse(cls, parameter: Optional[str]) -> GeneratorOptions:
        return cls.from_pairs(parse_parameter(parameter))

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, str]]) -> GeneratorOptions:
        """Build options from parameter pairs, raising a GenerationError for bad ones."""
        options = cls()
        for key, value in pairs:
            if key == "Visibility":
                try:
                    options.access_level = AccessLevel.from_protoc_option(value)
                except ValueError:
                    raise InvalidParameterValue(key, value) from None
            elif key == "Server":
                options.generate_server = _parse_bool(key, value)
            elif key == "Client":
                options.generate_client = _parse_bool(key, value)
            elif key == "ProtoPathModuleMappings":
                if value:
                    options.module_mappings_path = value
            elif key == "FileNaming":
                try:
                    options.file_naming = FileNaming.from_protoc_option(value)
                except ValueError:
                    raise InvalidParameterValue(key, value) from None
            elif key == "ExtraModuleImports":
                options.extra_module_imports.append(_non_empty(key, value))
            elif key == "GRPCModuleName":
                options.module_names = replace(
                    options.module_names, grpc_core=_non_empty(key, value)
                )
            elif key == "GRPCProtobufModuleName":
                options.module_names = replace(
                    options.module_names, grpc_protobuf=_non_empty(key, value)
                )
            elif key == "SwiftProtobufModuleName":
                options.module_names = replace(
                    options.module_names, swift_protobuf=_non_empty(key, value)
                )
            elif key == "Availability":
                parts = _non_empty(key, value).split(" ", 1)
                if len(parts) != 2 or not parts[0] or not parts[1]:
                    raise InvalidParameterValue(key, value)
                options.availability_overrides.append((parts[0], parts[1]))
            elif key == "ReflectionData":
                raise UnsupportedParameter(
                    key,
                    "The reflection service uses descriptor sets. Refer to the protoc docs "
                    "and the '--descriptor_set_out' option for more information.",
                )
            elif key == "UseAccessLevelOnImports":
                options.access_level_on_imports = _parse_bool(key, value)
            else:
                raise UnknownParameter(key)
        return options

    def load_module_mappings(self) -> ProtoFileToModuleMappings:
        swift_protobuf = self.module_names.swift_protobuf
        if self.module_mappings_path is None:
            return ProtoFileToModuleMappings(swift_protobuf_module_name=swift_protobuf)
        try:
            return ProtoFileToModuleMappings.load(self.module_mappings_path, swift_protobuf)
        except GeneratorError as e:
            raise GenerationError(
                f"Parameter 'ProtoPathModuleMappings={self.module_mappings_path}': {e}"
            ) from e
