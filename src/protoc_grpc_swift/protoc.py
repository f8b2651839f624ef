"""Locating and invoking protoc with the Swift generator plugins."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from protoc_grpc_swift.errors import ExternalToolFailure, ToolNotFound
from protoc_grpc_swift.models import GenerationConfig, PathLike

logger = logging.getLogger(__name__)

PROTOC = "protoc"
PROTOC_GEN_SWIFT = "protoc-gen-swift"
PROTOC_GEN_GRPC_SWIFT = "protoc-gen-grpc-swift"
PROTOC_PATH_ENV = "PROTOC_PATH"


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
    )


class ToolLocator:
    """Finds executables bundled next to the generator before falling back to PATH."""

    def __init__(self, search_directories: Iterable[PathLike] = ()):
        self.search_directories: List[str] = [os.fspath(d) for d in search_directories]

    def find(self, name: str) -> Optional[str]:
        """Return the bundled executable called ``name``, if there is one."""
        for directory in self.search_directories:
            candidate = os.path.join(directory, name)
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return candidate
        return None

    def require(self, name: str) -> str:
        path = self.find(name) or shutil.which(name)
        if path is None:
            raise ToolNotFound(name)
        return path


def derive_protoc_path(
    config: GenerationConfig,
    locator: ToolLocator,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Derive the path to the protoc to be used.

    An explicitly configured path wins, then a bundled protoc, then the
    ``PROTOC_PATH`` environment variable and finally whatever is on ``PATH``.
    """
    if config.protoc_path:
        return config.protoc_path

    bundled = locator.find(PROTOC)
    if bundled is not None:
        return bundled

    if environ is None:
        environ = os.environ
    environment_path = environ.get(PROTOC_PATH_ENV)
    if environment_path:
        return environment_path

    return locator.require(PROTOC)


def _bool_option(value: bool) -> str:
    return "true" if value else "false"


def construct_protoc_gen_swift_arguments(
    config: GenerationConfig,
    input_files: Sequence[PathLike],
    proto_directory_paths: Sequence[PathLike],
    protoc_gen_swift_path: PathLike,
    output_directory: PathLike,
) -> List[str]:
    """Arguments passed to protoc to generate messages with protoc-gen-swift."""
    args = [
        f"--plugin={PROTOC_GEN_SWIFT}={os.fspath(protoc_gen_swift_path)}",
        f"--swift_out={os.fspath(output_directory)}",
    ]
    args.extend(f"--proto_path={os.fspath(path)}" for path in proto_directory_paths)

    args.append(f"--swift_opt=Visibility={config.access_level}")
    args.append(f"--swift_opt=FileNaming={config.file_naming}")
    args.append(
        f"--swift_opt=UseAccessLevelOnImports={_bool_option(config.access_level_on_imports)}"
    )
    if config.module_mappings_path:
        args.append(f"--swift_opt=ProtoPathModuleMappings={config.module_mappings_path}")
    args.extend(os.fspath(f) for f in input_files)
    return args


def construct_protoc_gen_grpc_swift_arguments(
    config: GenerationConfig,
    input_files: Sequence[PathLike],
    proto_directory_paths: Sequence[PathLike],
    protoc_gen_grpc_swift_path: PathLike,
    output_directory: PathLike,
) -> List[str]:
    """Arguments passed to protoc to generate services with protoc-gen-grpc-swift."""
    args = [
        f"--plugin={PROTOC_GEN_GRPC_SWIFT}={os.fspath(protoc_gen_grpc_swift_path)}",
        f"--grpc-swift_out={os.fspath(output_directory)}",
    ]
    args.extend(f"--proto_path={os.fspath(path)}" for path in proto_directory_paths)

    args.append(f"--grpc-swift_opt=Visibility={config.access_level}")
    args.append(f"--grpc-swift_opt=Server={_bool_option(config.servers)}")
    args.append(f"--grpc-swift_opt=Client={_bool_option(config.clients)}")
    args.append(f"--grpc-swift_opt=FileNaming={config.file_naming}")
    args.append(
        f"--grpc-swift_opt=UseAccessLevelOnImports={_bool_option(config.access_level_on_imports)}"
    )
    if config.module_mappings_path:
        args.append(f"--grpc-swift_opt=ProtoPathModuleMappings={config.module_mappings_path}")
    args.extend(os.fspath(f) for f in input_files)
    return args


@dataclass(frozen=True)
class ProtocInvocation:
    executable: str
    arguments: Tuple[str, ...]

    @property
    def command(self) -> List[str]:
        return [self.executable, *self.arguments]

    def render(self) -> str:
        """Render the invocation the way it would be typed into a shell."""
        template = _get_template_env().get_template("protoc_invocation.sh.j2")
        return template.render(
            executable=self.executable,
            arguments=self.arguments,
        ).rstrip("\n")


def run_protoc(invocation: ProtocInvocation) -> subprocess.CompletedProcess:
    """Run protoc to completion, raising ExternalToolFailure unless it succeeds."""
    logger.debug("Running:\n%s", invocation.render())
    try:
        result = subprocess.run(invocation.command, capture_output=True, text=True)
    except OSError as e:
        raise ExternalToolFailure(invocation, None, stderr=str(e)) from e

    if result.returncode != 0:
        raise ExternalToolFailure(invocation, result.returncode, result.stderr, result.stdout)
    return result
