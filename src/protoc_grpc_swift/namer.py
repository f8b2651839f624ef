"""Swift names for protobuf packages and message types."""

from __future__ import annotations

from typing import Optional

from protoc_grpc_swift.camel_caser import to_lower_camel_case
from protoc_grpc_swift.descriptor.schema import MessageRef, SchemaFile
from protoc_grpc_swift.module_mappings import ProtoFileToModuleMappings


def type_prefix_for_package(package: str) -> str:
    """Prefix used for the types of a package, e.g. "foo_bar.baz" -> "FooBar_Baz_"."""
    if not package:
        return ""

    prefix = []
    make_upper = True
    for ch in package:
        if ch == "_":
            make_upper = True
        elif ch == ".":
            make_upper = True
            prefix.append("_")
        elif make_upper:
            prefix.append(ch.upper())
            make_upper = False
        else:
            prefix.append(ch)
    prefix.append("_")
    return "".join(prefix)


def trim_trailing_underscores(s: str) -> str:
    return s.rstrip("_")


class SwiftProtobufNamer:
    """Names types the same way protoc-gen-swift does for the current file.

    Anything with the same methods can be handed to the code generation
    parser instead, to target another naming scheme.
    """

    def __init__(
        self,
        current_file: SchemaFile,
        module_mappings: Optional[ProtoFileToModuleMappings] = None,
    ):
        self.current_file = current_file
        self.module_mappings = module_mappings or ProtoFileToModuleMappings()

    def type_prefix(self, file: SchemaFile) -> str:
        if file.swift_prefix is not None:
            return file.swift_prefix
        return type_prefix_for_package(file.package)

    def full_name(self, message: MessageRef) -> str:
        """Swift name of a message, qualified by module when it lives in another one."""
        declaring_file = self.current_file.descriptor_set.file_named(message.file_name)
        if declaring_file is not None:
            prefix = self.type_prefix(declaring_file)
        else:
            package = message.full_name[: -len(".".join(message.nested_names))].rstrip(".")
            prefix = type_prefix_for_package(package)

        name = prefix + ".".join(message.nested_names)

        module = self.module_mappings.module_name(message.file_name)
        if module is not None and module != self.module_mappings.module_name(self.current_file.name):
            return f"{module}.{name}"
        return name

    def formatted_upper_case_package(self, file: SchemaFile) -> str:
        return trim_trailing_underscores(self.type_prefix(file))

    def formatted_lower_case_package(self, file: SchemaFile) -> str:
        upper_case_package = self.formatted_upper_case_package(file)
        components = [c for c in upper_case_package.split("_") if c]
        return "_".join(to_lower_camel_case(c) for c in components)
