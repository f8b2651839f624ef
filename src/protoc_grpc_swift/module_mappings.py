"""Mapping of .proto files to the Swift modules containing their generated code.

The mapping file uses the text format understood by protoc-gen-swift::

    mapping {
      module_name: "MyModule"
      proto_file_path: "foo/bar.proto"
      proto_file_path: "foo/baz.proto"
    }
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory, text_format

from protoc_grpc_swift.descriptor.schema import SchemaFile
from protoc_grpc_swift.errors import ModuleMappingError
from protoc_grpc_swift.models import PathLike

DEFAULT_SWIFT_PROTOBUF_MODULE = "SwiftProtobuf"

WELL_KNOWN_TYPE_FILES = (
    "google/protobuf/any.proto",
    "google/protobuf/api.proto",
    "google/protobuf/duration.proto",
    "google/protobuf/empty.proto",
    "google/protobuf/field_mask.proto",
    "google/protobuf/source_context.proto",
    "google/protobuf/struct.proto",
    "google/protobuf/timestamp.proto",
    "google/protobuf/type.proto",
    "google/protobuf/wrappers.proto",
    "google/protobuf/descriptor.proto",
)

_MAPPINGS_MESSAGE = "swift_protobuf.gen_swift.ModuleMappings"

_FieldProto = descriptor_pb2.FieldDescriptorProto


def _module_mappings_class():
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="swift_protobuf_module_mappings.proto",
        package="swift_protobuf.gen_swift",
        syntax="proto3",
    )
    mappings = file_proto.message_type.add(name="ModuleMappings")
    entry = mappings.nested_type.add(name="Entry")
    entry.field.add(
        name="module_name",
        number=1,
        type=_FieldProto.TYPE_STRING,
        label=_FieldProto.LABEL_OPTIONAL,
    )
    entry.field.add(
        name="proto_file_path",
        number=2,
        type=_FieldProto.TYPE_STRING,
        label=_FieldProto.LABEL_REPEATED,
    )
    mappings.field.add(
        name="mapping",
        number=1,
        type=_FieldProto.TYPE_MESSAGE,
        label=_FieldProto.LABEL_REPEATED,
        type_name=f".{_MAPPINGS_MESSAGE}.Entry",
    )

    pool = descriptor_pool.DescriptorPool()
    pool.Add(file_proto)
    return message_factory.GetMessageClass(pool.FindMessageTypeByName(_MAPPINGS_MESSAGE))


class ProtoFileToModuleMappings:
    """Which module each .proto file's generated code lives in."""

    def __init__(
        self,
        mappings: Optional[Mapping[str, str]] = None,
        swift_protobuf_module_name: str = DEFAULT_SWIFT_PROTOBUF_MODULE,
    ):
        self.swift_protobuf_module_name = swift_protobuf_module_name
        self._has_user_mappings = bool(mappings)
        self._mappings: Dict[str, str] = {
            path: swift_protobuf_module_name for path in WELL_KNOWN_TYPE_FILES
        }
        if mappings:
            self._mappings.update(mappings)

    @classmethod
    def parse(
        cls,
        text: str,
        swift_protobuf_module_name: str = DEFAULT_SWIFT_PROTOBUF_MODULE,
    ) -> ProtoFileToModuleMappings:
        message = _module_mappings_class()()
        try:
            text_format.Parse(text, message)
        except text_format.ParseError as e:
            raise ModuleMappingError(f"Invalid module mappings: {e}") from e

        mappings: Dict[str, str] = {}
        for index, entry in enumerate(message.mapping):
            if not entry.module_name:
                raise ModuleMappingError(f"Mapping {index} has no module name")
            if not entry.proto_file_path:
                raise ModuleMappingError(
                    f"Mapping {index} for module '{entry.module_name}' has no proto file paths"
                )
            for path in entry.proto_file_path:
                existing = mappings.get(path)
                if existing is not None and existing != entry.module_name:
                    raise ModuleMappingError(
                        f"'{path}' is mapped to both '{existing}' and '{entry.module_name}'"
                    )
                mappings[path] = entry.module_name

        return cls(mappings, swift_protobuf_module_name)

    @classmethod
    def load(
        cls,
        path: PathLike,
        swift_protobuf_module_name: str = DEFAULT_SWIFT_PROTOBUF_MODULE,
    ) -> ProtoFileToModuleMappings:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ModuleMappingError(f"Could not read module mappings '{path}': {e}") from e
        return cls.parse(text, swift_protobuf_module_name)

    @property
    def has_mappings(self) -> bool:
        return self._has_user_mappings

    def module_name(self, file_name: str) -> Optional[str]:
        return self._mappings.get(file_name)

    def needed_modules(self, schema_file: SchemaFile) -> Optional[List[str]]:
        """Modules which must be imported for the types used by ``schema_file``.

        Returns ``None`` when nothing beyond the default mappings is known or
        the file has no imports. Public imports are followed transitively.
        """
        if not self._has_user_mappings or not schema_file.dependencies:
            return None

        modules: Set[str] = set()
        pending = list(schema_file.dependencies)
        visited: Set[str] = set()
        while pending:
            dependency = pending.pop()
            if dependency in visited:
                continue
            visited.add(dependency)

            module = self._mappings.get(dependency)
            if module is not None:
                modules.add(module)

            dependency_file = schema_file.descriptor_set.file_named(dependency)
            if dependency_file is not None:
                pending.extend(dependency_file.public_dependencies)

        own_module = self._mappings.get(schema_file.name)
        modules.discard(own_module)
        return sorted(modules)
