"""Turns a parsed .proto file into a code generation request."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from protoc_grpc_swift.camel_caser import to_lower_camel_case
from protoc_grpc_swift.descriptor.schema import SchemaFile, SchemaMethod, SchemaService
from protoc_grpc_swift.models import (
    AccessLevel,
    CodeGenerationRequest,
    Dependency,
    MethodDescriptor,
    Name,
    ServiceDescriptor,
)
from protoc_grpc_swift.module_mappings import ProtoFileToModuleMappings
from protoc_grpc_swift.namer import SwiftProtobufNamer


@dataclass(frozen=True)
class ModuleNames:
    grpc_core: str = "GRPCCore"
    grpc_protobuf: str = "GRPCProtobuf"
    swift_protobuf: str = "SwiftProtobuf"


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
    )


def render_leading_trivia(file_name: str) -> str:
    template = _get_template_env().get_template("leading_trivia.swift.j2")
    return template.render(file_name=file_name)


def _camel_cased_name(name: str) -> Name:
    # Service and method names in .proto files are expected in upper camel case.
    return Name(
        base=name,
        generated_upper_case=name,
        generated_lower_case=to_lower_camel_case(name),
    )


def _deduplicated(dependencies: Iterable[Dependency]) -> Tuple[Dependency, ...]:
    seen = set()
    unique: List[Dependency] = []
    for dependency in dependencies:
        if dependency.module in seen:
            continue
        seen.add(dependency.module)
        unique.append(dependency)
    return tuple(unique)


class ProtobufCodeGenParser:
    """Parses a SchemaFile into a CodeGenerationRequest."""

    def __init__(
        self,
        module_mappings: Optional[ProtoFileToModuleMappings] = None,
        extra_module_imports: Sequence[str] = (),
        access_level: AccessLevel = AccessLevel.INTERNAL,
        module_names: ModuleNames = ModuleNames(),
        namer_factory: Callable[..., SwiftProtobufNamer] = SwiftProtobufNamer,
    ):
        self.module_mappings = module_mappings or ProtoFileToModuleMappings(
            swift_protobuf_module_name=module_names.swift_protobuf
        )
        self.extra_module_imports = list(extra_module_imports)
        self.access_level = access_level
        self.module_names = module_names
        self.namer_factory = namer_factory

    def parse(self, schema_file: SchemaFile) -> CodeGenerationRequest:
        namer = self.namer_factory(schema_file, self.module_mappings)

        header = schema_file.header
        # Ensure there is a blank line after the header.
        if header and not header.endswith("\n\n"):
            header += "\n"

        grpc_protobuf = self.module_names.grpc_protobuf

        def lookup_serializer(message_type: str) -> str:
            return f"{grpc_protobuf}.ProtobufSerializer<{message_type}>()"

        def lookup_deserializer(message_type: str) -> str:
            return f"{grpc_protobuf}.ProtobufDeserializer<{message_type}>()"

        services = tuple(
            self._service_descriptor(service, schema_file, namer)
            for service in schema_file.services
        )

        return CodeGenerationRequest(
            file_name=schema_file.name,
            leading_trivia=header + render_leading_trivia(schema_file.name),
            dependencies=self._code_dependencies(schema_file),
            services=services,
            lookup_serializer=lookup_serializer,
            lookup_deserializer=lookup_deserializer,
        )

    def _code_dependencies(self, schema_file: SchemaFile) -> Tuple[Dependency, ...]:
        dependencies = [Dependency(self.module_names.grpc_protobuf, AccessLevel.INTERNAL)]

        # Only import the protobuf runtime when services use well-known types,
        # otherwise access levels on imports produce unused import warnings.
        uses_well_known_types = any(
            method.input_type.well_known or method.output_type.well_known
            for service in schema_file.services
            for method in service.methods
        )
        if uses_well_known_types:
            dependencies.append(Dependency(self.module_names.swift_protobuf, self.access_level))

        # Modules containing the code generated for imported .proto files.
        for module in self.module_mappings.needed_modules(schema_file) or []:
            dependencies.append(Dependency(module, self.access_level))

        for module in sorted(self.extra_module_imports):
            dependencies.append(Dependency(module, self.access_level))

        return _deduplicated(dependencies)

    def _service_descriptor(
        self,
        service: SchemaService,
        schema_file: SchemaFile,
        namer: SwiftProtobufNamer,
    ) -> ServiceDescriptor:
        # Packages usually contain dots, e.g. "grpc.test".
        namespace = Name(
            base=schema_file.package,
            generated_upper_case=namer.formatted_upper_case_package(schema_file),
            generated_lower_case=namer.formatted_lower_case_package(schema_file),
        )
        return ServiceDescriptor(
            documentation=service.documentation,
            name=_camel_cased_name(service.name),
            namespace=namespace,
            methods=tuple(self._method_descriptor(m, namer) for m in service.methods),
        )

    def _method_descriptor(
        self,
        method: SchemaMethod,
        namer: SwiftProtobufNamer,
    ) -> MethodDescriptor:
        return MethodDescriptor(
            documentation=method.documentation,
            name=_camel_cased_name(method.name),
            is_input_streaming=method.client_streaming,
            is_output_streaming=method.server_streaming,
            input_type=namer.full_name(method.input_type),
            output_type=namer.full_name(method.output_type),
        )


def build_request(
    schema_file: SchemaFile,
    module_mappings: Optional[ProtoFileToModuleMappings] = None,
    extra_imports: Sequence[str] = (),
    access_level: AccessLevel = AccessLevel.INTERNAL,
) -> CodeGenerationRequest:
    """Build the code generation request for one file with the default module names."""
    parser = ProtobufCodeGenParser(
        module_mappings=module_mappings,
        extra_module_imports=extra_imports,
        access_level=access_level,
    )
    return parser.parse(schema_file)
