"""Read-only view of the file descriptors produced by protoc.

A ``DescriptorSet`` indexes every message declared by its files so that the
input and output types of service methods can be traced back to the file
(and therefore the module) declaring them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from google.protobuf import descriptor_pb2

from protoc_grpc_swift.descriptor.comments import as_source_comment
from protoc_grpc_swift.errors import DescriptorError

# Field numbers used to build source code location paths.
# See google/protobuf/descriptor.proto.
SERVICE_FIELD_NUMBER = descriptor_pb2.FileDescriptorProto.SERVICE_FIELD_NUMBER
METHOD_FIELD_NUMBER = descriptor_pb2.ServiceDescriptorProto.METHOD_FIELD_NUMBER
SYNTAX_FIELD_NUMBER = descriptor_pb2.FileDescriptorProto.SYNTAX_FIELD_NUMBER

WELL_KNOWN_TYPES = frozenset(
    f"google.protobuf.{name}"
    for name in (
        "Any",
        "Api",
        "BoolValue",
        "BytesValue",
        "DoubleValue",
        "Duration",
        "Empty",
        "FieldMask",
        "FloatValue",
        "Int32Value",
        "Int64Value",
        "ListValue",
        "StringValue",
        "Struct",
        "Timestamp",
        "UInt32Value",
        "UInt64Value",
        "Value",
    )
)


@dataclass(frozen=True)
class MessageRef:
    """A message type referenced by a method."""

    full_name: str
    file_name: str
    # From the package scope down, e.g. ("Outer", "Inner").
    nested_names: Tuple[str, ...]

    @property
    def well_known(self) -> bool:
        return self.full_name in WELL_KNOWN_TYPES


@dataclass(frozen=True)
class SchemaMethod:
    name: str
    input_type: MessageRef
    output_type: MessageRef
    client_streaming: bool
    server_streaming: bool
    documentation: str = ""


@dataclass(frozen=True)
class SchemaService:
    name: str
    methods: Tuple[SchemaMethod, ...]
    documentation: str = ""


class SchemaFile:
    """A single .proto file and the services it declares."""

    def __init__(self, proto: descriptor_pb2.FileDescriptorProto, descriptor_set: DescriptorSet):
        self._proto = proto
        self._descriptor_set = descriptor_set
        self._locations: Dict[Tuple[int, ...], descriptor_pb2.SourceCodeInfo.Location] = {}
        for location in proto.source_code_info.location:
            self._locations.setdefault(tuple(location.path), location)

        services: List[SchemaService] = []
        for i, service in enumerate(proto.service):
            service_path = (SERVICE_FIELD_NUMBER, i)
            methods: List[SchemaMethod] = []
            for j, method in enumerate(service.method):
                methods.append(
                    SchemaMethod(
                        name=method.name,
                        input_type=descriptor_set.resolve_message(method.input_type),
                        output_type=descriptor_set.resolve_message(method.output_type),
                        client_streaming=method.client_streaming,
                        server_streaming=method.server_streaming,
                        documentation=self.source_comments(
                            service_path + (METHOD_FIELD_NUMBER, j)
                        ),
                    )
                )
            services.append(
                SchemaService(
                    name=service.name,
                    methods=tuple(methods),
                    documentation=self.source_comments(service_path),
                )
            )
        self._services = tuple(services)

    @property
    def descriptor_set(self) -> DescriptorSet:
        return self._descriptor_set

    @property
    def name(self) -> str:
        return self._proto.name

    @property
    def package(self) -> str:
        return self._proto.package

    @property
    def services(self) -> Tuple[SchemaService, ...]:
        return self._services

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return tuple(self._proto.dependency)

    @property
    def public_dependencies(self) -> Tuple[str, ...]:
        return tuple(self._proto.dependency[i] for i in self._proto.public_dependency)

    @property
    def swift_prefix(self) -> Optional[str]:
        if self._proto.options.HasField("swift_prefix"):
            return self._proto.options.swift_prefix
        return None

    @property
    def header(self) -> str:
        """Comments attached to the syntax declaration, usually the first in a file."""
        return self.source_comments(
            (SYNTAX_FIELD_NUMBER,),
            comment_prefix="///",
            leading_detached_prefix="//",
        )

    def location(self, path: Sequence[int]) -> Optional[descriptor_pb2.SourceCodeInfo.Location]:
        return self._locations.get(tuple(path))

    def source_comments(
        self,
        path: Sequence[int],
        comment_prefix: str = "///",
        leading_detached_prefix: Optional[str] = None,
    ) -> str:
        location = self.location(path)
        if location is None:
            return ""
        return as_source_comment(location, comment_prefix, leading_detached_prefix)

    def __repr__(self) -> str:
        return f"SchemaFile(name={self.name!r}, package={self.package!r})"


class DescriptorSet:
    """All files known to one generation pass, indexed by name."""

    def __init__(self, files: Iterable[descriptor_pb2.FileDescriptorProto]):
        self._messages: Dict[str, MessageRef] = {}
        protos: List[descriptor_pb2.FileDescriptorProto] = []
        for proto in files:
            protos.append(proto)
            for message in proto.message_type:
                self._index_message(proto, message, ())

        self._files: Dict[str, SchemaFile] = {}
        for proto in protos:
            self._files[proto.name] = SchemaFile(proto, self)

    @classmethod
    def from_file_descriptor_set(cls, file_set: descriptor_pb2.FileDescriptorSet) -> DescriptorSet:
        return cls(file_set.file)

    def _index_message(
        self,
        proto: descriptor_pb2.FileDescriptorProto,
        message: descriptor_pb2.DescriptorProto,
        parents: Tuple[str, ...],
    ) -> None:
        nested_names = parents + (message.name,)
        full_name = ".".join(nested_names)
        if proto.package:
            full_name = f"{proto.package}.{full_name}"
        self._messages[full_name] = MessageRef(
            full_name=full_name,
            file_name=proto.name,
            nested_names=nested_names,
        )
        for nested in message.nested_type:
            self._index_message(proto, nested, nested_names)

    def resolve_message(self, type_name: str) -> MessageRef:
        """Look up a fully qualified message name, with or without the leading dot."""
        full_name = type_name.lstrip(".")
        try:
            return self._messages[full_name]
        except KeyError:
            raise DescriptorError(
                f"Message type '{full_name}' is not declared by any file in the descriptor set"
            ) from None

    def file_named(self, name: str) -> Optional[SchemaFile]:
        return self._files.get(name)

    def require_file(self, name: str) -> SchemaFile:
        schema_file = self.file_named(name)
        if schema_file is None:
            names = ", ".join(self._files)
            raise DescriptorError(
                f"Could not locate '{name}' in the descriptor set. Found: {names}"
            )
        return schema_file

    def __iter__(self) -> Iterator[SchemaFile]:
        return iter(self._files.values())

    def __len__(self) -> int:
        return len(self._files)
