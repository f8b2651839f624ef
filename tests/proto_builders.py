"""Helpers building FileDescriptorProtos in memory, so tests don't need protoc."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from google.protobuf import descriptor_pb2

from protoc_grpc_swift.descriptor.schema import DescriptorSet

# (name, input type, output type, client streaming, server streaming)
MethodSpec = Tuple[str, str, str, bool, bool]


def make_file(
    name: str,
    package: str = "",
    messages: Iterable[str] = (),
    services: Sequence[Tuple[str, Sequence[MethodSpec]]] = (),
    dependencies: Sequence[str] = (),
    public_dependencies: Sequence[int] = (),
    swift_prefix: Optional[str] = None,
) -> descriptor_pb2.FileDescriptorProto:
    """Build a file. Nested messages are written as "Outer.Inner"."""
    proto = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
    proto.dependency.extend(dependencies)
    proto.public_dependency.extend(public_dependencies)
    if swift_prefix is not None:
        proto.options.swift_prefix = swift_prefix

    for message_name in messages:
        parts = message_name.split(".")
        container = proto.message_type
        for part in parts:
            existing = [m for m in container if m.name == part]
            message = existing[0] if existing else container.add(name=part)
            container = message.nested_type

    for service_name, methods in services:
        service = proto.service.add(name=service_name)
        for method_name, input_type, output_type, client_streaming, server_streaming in methods:
            service.method.add(
                name=method_name,
                input_type=input_type,
                output_type=output_type,
                client_streaming=client_streaming,
                server_streaming=server_streaming,
            )
    return proto


def add_comments(
    proto: descriptor_pb2.FileDescriptorProto,
    path: Sequence[int],
    leading: str = "",
    trailing: str = "",
    detached: Sequence[str] = (),
) -> None:
    location = proto.source_code_info.location.add()
    location.path.extend(path)
    if leading:
        location.leading_comments = leading
    if trailing:
        location.trailing_comments = trailing
    location.leading_detached_comments.extend(detached)


def well_known_file(module) -> descriptor_pb2.FileDescriptorProto:
    """The descriptor of a generated module, e.g. ``empty_pb2``."""
    proto = descriptor_pb2.FileDescriptorProto()
    module.DESCRIPTOR.CopyToProto(proto)
    return proto


def make_test_service_file() -> descriptor_pb2.FileDescriptorProto:
    """A self-contained file with one service using every streaming kind."""
    proto = make_file(
        "test-service.proto",
        package="test",
        messages=["TestInput", "TestOutput"],
        services=[
            (
                "TestService",
                [
                    ("Unary", ".test.TestInput", ".test.TestOutput", False, False),
                    ("ClientStreaming", ".test.TestInput", ".test.TestOutput", True, False),
                    ("ServerStreaming", ".test.TestInput", ".test.TestOutput", False, True),
                    ("BidirectionalStreaming", ".test.TestInput", ".test.TestOutput", True, True),
                ],
            )
        ],
    )
    add_comments(proto, [12], leading=" Leading trivia.\n")
    add_comments(proto, [6, 0], leading=" Service docs.\n")
    add_comments(proto, [6, 0, 2, 0], leading=" Unary docs.\n")
    add_comments(proto, [6, 0, 2, 1], leading=" Client streaming docs.\n")
    add_comments(proto, [6, 0, 2, 2], leading=" Server streaming docs.\n")
    add_comments(proto, [6, 0, 2, 3], leading=" Bidirectional streaming docs.\n")
    return proto


def descriptor_set(*files: descriptor_pb2.FileDescriptorProto) -> DescriptorSet:
    return DescriptorSet(files)
