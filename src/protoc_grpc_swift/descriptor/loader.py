from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Sequence

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from protoc_grpc_swift.descriptor.schema import DescriptorSet
from protoc_grpc_swift.errors import DescriptorError
from protoc_grpc_swift.models import PathLike
from protoc_grpc_swift.protoc import ProtocInvocation, run_protoc


def parse_descriptor_set(data: bytes) -> DescriptorSet:
    """Decode a binary encoded FileDescriptorSet."""
    file_set = descriptor_pb2.FileDescriptorSet()
    try:
        file_set.ParseFromString(data)
    except DecodeError as e:
        raise DescriptorError(f"Invalid descriptor set: {e}") from e
    return DescriptorSet.from_file_descriptor_set(file_set)


def read_descriptor_set(path: PathLike) -> DescriptorSet:
    return parse_descriptor_set(Path(path).read_bytes())


def compile_descriptor_set(
    proto_files: Sequence[PathLike],
    import_paths: Sequence[PathLike] = (),
    protoc_path: str = "protoc",
) -> DescriptorSet:
    """Run protoc to produce a descriptor set, with imports and source comments."""
    with tempfile.TemporaryDirectory() as td:
        desc_path = os.path.join(td, "descriptor_set.pb")
        arguments = [
            "--include_imports",
            "--include_source_info",
            f"--descriptor_set_out={desc_path}",
        ]
        arguments.extend(f"--proto_path={os.fspath(p)}" for p in import_paths)
        arguments.extend(os.fspath(f) for f in proto_files)

        run_protoc(ProtocInvocation(protoc_path, tuple(arguments)))
        return read_descriptor_set(desc_path)
