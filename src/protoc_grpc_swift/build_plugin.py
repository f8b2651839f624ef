"""Build step: generate code for every .proto file of a source tree.

Each .proto file is generated with the config file nearest to it, see
``config.find_applicable_config``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from protoc_grpc_swift.config import CONFIG_FILE_NAME, find_applicable_config, read_config_files
from protoc_grpc_swift.errors import InvalidInputFileExtension, NoApplicableConfigFound
from protoc_grpc_swift.models import GenerationConfig, PathLike
from protoc_grpc_swift.paths import (
    GRPC_SWIFT_EXTENSION,
    PB_SWIFT_EXTENSION,
    PROTO_EXTENSION,
    derive_output_file_path,
)
from protoc_grpc_swift.protoc import (
    PROTOC_GEN_GRPC_SWIFT,
    PROTOC_GEN_SWIFT,
    ProtocInvocation,
    ToolLocator,
    construct_protoc_gen_grpc_swift_arguments,
    construct_protoc_gen_swift_arguments,
    derive_protoc_path,
    run_protoc,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildCommand:
    """One protoc invocation together with the files it reads and writes."""

    display_name: str
    executable: str
    arguments: Tuple[str, ...]
    input_files: Tuple[Path, ...]
    output_files: Tuple[Path, ...]

    @property
    def invocation(self) -> ProtocInvocation:
        return ProtocInvocation(self.executable, self.arguments)


def discover_sources(source_directory: PathLike) -> Tuple[List[Path], List[Path]]:
    """Find the .proto files and config files under a directory, sorted."""
    proto_files: List[Path] = []
    config_files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(source_directory):
        dirnames.sort()
        for fn in filenames:
            if fn == CONFIG_FILE_NAME:
                config_files.append(Path(dirpath) / fn)
            elif fn.endswith(PROTO_EXTENSION):
                proto_files.append(Path(dirpath) / fn)
    # Sort for deterministic output
    proto_files.sort()
    config_files.sort()
    return proto_files, config_files


def _validate_input_files(input_files: Sequence[PathLike]) -> None:
    invalid = [os.fspath(f) for f in input_files if not os.fspath(f).endswith(PROTO_EXTENSION)]
    if invalid:
        raise InvalidInputFileExtension(invalid)


def create_build_commands(
    input_files: Sequence[PathLike],
    config_files: Sequence[PathLike],
    plugin_work_directory: PathLike,
    locator: ToolLocator,
    environ: Optional[Mapping[str, str]] = None,
) -> List[BuildCommand]:
    """Create the protoc commands generating code for every input file."""
    _validate_input_files(input_files)
    configs = read_config_files(config_files, plugin_work_directory)

    protoc_gen_grpc_swift_path = locator.require(PROTOC_GEN_GRPC_SWIFT)
    protoc_gen_swift_path = locator.require(PROTOC_GEN_SWIFT)

    commands: List[BuildCommand] = []
    for input_file in input_files:
        input_path = Path(os.path.abspath(input_file))
        applicable = find_applicable_config(input_path, configs)
        if applicable is None:
            raise NoApplicableConfigFound(os.fspath(input_file))
        config_file_path, config = applicable
        config_directory = config_file_path.parent

        protoc_path = derive_protoc_path(config, locator, environ)
        if config.import_paths:
            proto_directory_paths: Sequence[str] = config.import_paths
        else:
            proto_directory_paths = [os.fspath(config_directory)]

        # Unless explicitly opted out.
        if config.clients or config.servers:
            commands.append(
                _grpc_swift_command(
                    input_path,
                    config,
                    config_directory,
                    proto_directory_paths,
                    protoc_path,
                    protoc_gen_grpc_swift_path,
                    config_file_path,
                )
            )
        if config.messages:
            commands.append(
                _swift_command(
                    input_path,
                    config,
                    config_directory,
                    proto_directory_paths,
                    protoc_path,
                    protoc_gen_swift_path,
                    config_file_path,
                )
            )

    return commands


def _grpc_swift_command(
    input_file: Path,
    config: GenerationConfig,
    base_directory: Path,
    proto_directory_paths: Sequence[str],
    protoc_path: str,
    protoc_gen_grpc_swift_path: str,
    config_file_path: Path,
) -> BuildCommand:
    output_file = derive_output_file_path(
        input_file,
        config.file_naming,
        base_directory,
        config.output_path,
        GRPC_SWIFT_EXTENSION,
    )
    arguments = construct_protoc_gen_grpc_swift_arguments(
        config,
        [input_file],
        proto_directory_paths,
        protoc_gen_grpc_swift_path,
        config.output_path,
    )
    return BuildCommand(
        display_name=f"Generating gRPC Swift files for {input_file}",
        executable=protoc_path,
        arguments=tuple(arguments),
        input_files=(input_file, Path(protoc_gen_grpc_swift_path), config_file_path),
        output_files=(output_file,),
    )


def _swift_command(
    input_file: Path,
    config: GenerationConfig,
    base_directory: Path,
    proto_directory_paths: Sequence[str],
    protoc_path: str,
    protoc_gen_swift_path: str,
    config_file_path: Path,
) -> BuildCommand:
    output_file = derive_output_file_path(
        input_file,
        config.file_naming,
        base_directory,
        config.output_path,
        PB_SWIFT_EXTENSION,
    )
    arguments = construct_protoc_gen_swift_arguments(
        config,
        [input_file],
        proto_directory_paths,
        protoc_gen_swift_path,
        config.output_path,
    )
    return BuildCommand(
        display_name=f"Generating Swift Protobuf files for {input_file}",
        executable=protoc_path,
        arguments=tuple(arguments),
        input_files=(input_file, Path(protoc_gen_swift_path), config_file_path),
        output_files=(output_file,),
    )


def run_build_commands(commands: Sequence[BuildCommand], dry_run: bool = False) -> List[Path]:
    """Run every command in order. The first failure aborts the run.

    Returns the paths of the generated files.
    """
    generated: List[Path] = []
    for command in commands:
        logger.info(command.display_name)
        if dry_run:
            print(command.invocation.render())
            continue
        for output_file in command.output_files:
            output_file.parent.mkdir(parents=True, exist_ok=True)
        run_protoc(command.invocation)
        generated.extend(command.output_files)
    return generated
