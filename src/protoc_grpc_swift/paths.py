from __future__ import annotations

from pathlib import Path, PurePath
from typing import List

from protoc_grpc_swift.models import FileNaming, PathLike

PROTO_EXTENSION = ".proto"
GRPC_SWIFT_EXTENSION = ".grpc.swift"
PB_SWIFT_EXTENSION = ".pb.swift"


def derive_output_file_path(
    proto_file: PathLike,
    file_naming: FileNaming,
    base_directory: PathLike,
    output_directory: PathLike,
    output_extension: str,
) -> Path:
    """Derive the path of the file generated for ``proto_file``.

    Matches what the protoc plugins produce for each naming scheme. The path
    of the input relative to ``base_directory`` is kept (``FullPath``),
    flattened with underscores (``PathToUnderscores``) or dropped
    (``DropPath``). Nothing is read from the filesystem.
    """
    proto_path = PurePath(proto_file)
    if proto_path.suffix != PROTO_EXTENSION:
        raise AssertionError(f"Expected a '{PROTO_EXTENSION}' file, got '{proto_file}'")

    if not output_extension.startswith("."):
        output_extension = "." + output_extension
    file_name = proto_path.name[: -len(PROTO_EXTENSION)] + output_extension

    # The input's directory relative to the base directory; shared leading
    # components are stripped up to the first mismatch.
    relative_components: List[str] = list(proto_path.parent.parts)
    for component in PurePath(base_directory).parts:
        if relative_components and relative_components[0] == component:
            relative_components.pop(0)
        else:
            break

    output_path = Path(output_directory)
    if file_naming is FileNaming.FULL_PATH:
        return output_path.joinpath(*relative_components, file_name)
    if file_naming is FileNaming.PATH_TO_UNDERSCORES:
        return output_path / "_".join(relative_components + [file_name])
    return output_path / file_name
