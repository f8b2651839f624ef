from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

PathLike = Union[str, "os.PathLike[str]"]


class _RawValueEnum(Enum):
    """Enum with a raw string value and the two ways of parsing it."""

    @classmethod
    def parse(cls, text: str):
        """Parse a user supplied value, ignoring case."""
        lowered = text.lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise ValueError(f"'{text}' is not a valid {cls.__name__}")

    @classmethod
    def from_protoc_option(cls, text: str):
        """Parse a protoc plugin option, which must match the raw value exactly."""
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"'{text}' is not a valid {cls.__name__}")

    def __str__(self) -> str:
        return self.value


class AccessLevel(_RawValueEnum):
    """The access level (visibility) of generated code."""

    INTERNAL = "Internal"
    PUBLIC = "Public"
    PACKAGE = "Package"


class FileNaming(_RawValueEnum):
    """The naming of output files with respect to the path of the source file.

    For an input of ``foo/bar/baz.proto``:

    - ``FullPath``: ``foo/bar/baz.grpc.swift``
    - ``PathToUnderscores``: ``foo_bar_baz.grpc.swift``
    - ``DropPath``: ``baz.grpc.swift``
    """

    FULL_PATH = "FullPath"
    PATH_TO_UNDERSCORES = "PathToUnderscores"
    DROP_PATH = "DropPath"


@dataclass(frozen=True)
class GenerationConfig:
    """Options used to generate code for a set of .proto files."""

    access_level: AccessLevel = AccessLevel.INTERNAL
    servers: bool = True
    clients: bool = True
    messages: bool = True
    file_naming: FileNaming = FileNaming.FULL_PATH
    access_level_on_imports: bool = False
    # Searched in order.
    import_paths: Tuple[str, ...] = ()
    protoc_path: Optional[str] = None
    output_path: str = ""
    module_mappings_path: Optional[str] = None


@dataclass(frozen=True)
class Name:
    base: str
    generated_upper_case: str
    generated_lower_case: str


@dataclass(frozen=True)
class Dependency:
    module: str
    access_level: AccessLevel


@dataclass(frozen=True)
class MethodDescriptor:
    documentation: str
    name: Name
    is_input_streaming: bool
    is_output_streaming: bool
    input_type: str
    output_type: str


@dataclass(frozen=True)
class ServiceDescriptor:
    documentation: str
    name: Name
    namespace: Name
    methods: Tuple[MethodDescriptor, ...] = ()


@dataclass(frozen=True)
class CodeGenerationRequest:
    """Everything a source generator needs to emit gRPC code for one file."""

    file_name: str
    leading_trivia: str
    dependencies: Tuple[Dependency, ...]
    services: Tuple[ServiceDescriptor, ...]
    lookup_serializer: Callable[[str], str] = field(compare=False, repr=False)
    lookup_deserializer: Callable[[str], str] = field(compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Render the request as plain JSON-compatible data."""
        services: List[Dict[str, Any]] = []
        for service in self.services:
            methods = []
            for method in service.methods:
                methods.append({
                    "documentation": method.documentation,
                    "name": _name_to_dict(method.name),
                    "isInputStreaming": method.is_input_streaming,
                    "isOutputStreaming": method.is_output_streaming,
                    "inputType": method.input_type,
                    "outputType": method.output_type,
                    "coding": {
                        message_type: {
                            "serializer": self.lookup_serializer(message_type),
                            "deserializer": self.lookup_deserializer(message_type),
                        }
                        for message_type in (method.input_type, method.output_type)
                    },
                })
            services.append({
                "documentation": service.documentation,
                "name": _name_to_dict(service.name),
                "namespace": _name_to_dict(service.namespace),
                "methods": methods,
            })

        return {
            "fileName": self.file_name,
            "leadingTrivia": self.leading_trivia,
            "dependencies": [
                {"module": d.module, "accessLevel": d.access_level.value}
                for d in self.dependencies
            ],
            "services": services,
        }


def _name_to_dict(name: Name) -> Dict[str, str]:
    return {
        "base": name.base,
        "generatedUpperCase": name.generated_upper_case,
        "generatedLowerCase": name.generated_lower_case,
    }
