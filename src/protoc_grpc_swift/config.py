"""Generation config files and the resolution of the config applying to a file.

A config file applies to every .proto file in its directory and below,
unless a config file closer to the .proto file exists::

    {
      "generate": {"servers": true, "clients": true, "messages": true},
      "generatedSource": {"accessLevel": "internal", "accessLevelOnImports": false},
      "protoc": {"importPaths": ["../protos"], "executablePath": "/usr/bin/protoc"}
    }

Every key is optional; unknown keys are ignored.
"""

from __future__ import annotations

import json
import os
from collections import defaultdict
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePath
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from protoc_grpc_swift.errors import ConfigurationFileError, DuplicateConfigFiles
from protoc_grpc_swift.models import AccessLevel, FileNaming, GenerationConfig, PathLike

CONFIG_FILE_NAME = "grpc-swift-proto-generator-config.json"


def _optional(
    group: Mapping[str, Any],
    key: str,
    expected: type,
    default: Any,
    source: str,
) -> Any:
    if key not in group or group[key] is None:
        return default
    value = group[key]
    if not isinstance(value, expected):
        raise ConfigurationFileError(
            source, f"'{key}' must be of type {expected.__name__}, got {value!r}"
        )
    return value


def _group(data: Mapping[str, Any], key: str, source: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationFileError(source, f"'{key}' must be an object, got {value!r}")
    return value


@dataclass(frozen=True)
class Generate:
    """Which components are generated. Everything is generated by default."""

    servers: bool = True
    clients: bool = True
    messages: bool = True


@dataclass(frozen=True)
class GeneratedSource:
    access_level: AccessLevel = AccessLevel.INTERNAL
    access_level_on_imports: bool = False


@dataclass(frozen=True)
class Protoc:
    # Relative to the directory of the config file, searched in order.
    import_paths: Tuple[str, ...] = ()
    executable_path: Optional[str] = None


@dataclass(frozen=True)
class BuildPluginConfig:
    """The decoded contents of a config file."""

    generate: Generate = field(default_factory=Generate)
    generated_source: GeneratedSource = field(default_factory=GeneratedSource)
    protoc: Protoc = field(default_factory=Protoc)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: str = "<config>") -> BuildPluginConfig:
        if not isinstance(data, dict):
            raise ConfigurationFileError(source, "expected a JSON object at the top level")

        generate = _group(data, "generate", source)
        generated_source = _group(data, "generatedSource", source)
        protoc = _group(data, "protoc", source)

        raw_access_level = _optional(generated_source, "accessLevel", str, None, source)
        access_level = AccessLevel.INTERNAL
        if raw_access_level is not None:
            try:
                access_level = AccessLevel.parse(raw_access_level)
            except ValueError as e:
                raise ConfigurationFileError(source, f"'accessLevel': {e}") from e

        import_paths = _optional(protoc, "importPaths", list, [], source)
        for path in import_paths:
            if not isinstance(path, str):
                raise ConfigurationFileError(
                    source, f"'importPaths' must only contain strings, got {path!r}"
                )

        return cls(
            generate=Generate(
                servers=_optional(generate, "servers", bool, True, source),
                clients=_optional(generate, "clients", bool, True, source),
                messages=_optional(generate, "messages", bool, True, source),
            ),
            generated_source=GeneratedSource(
                access_level=access_level,
                access_level_on_imports=_optional(
                    generated_source, "accessLevelOnImports", bool, False, source
                ),
            ),
            protoc=Protoc(
                import_paths=tuple(import_paths),
                executable_path=_optional(protoc, "executablePath", str, None, source),
            ),
        )

    @classmethod
    def from_json(cls, text: str, source: str = "<config>") -> BuildPluginConfig:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationFileError(source, str(e)) from e
        return cls.from_dict(data, source)

    @classmethod
    def load(cls, path: PathLike) -> BuildPluginConfig:
        source = os.fspath(path)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationFileError(source, str(e)) from e
        return cls.from_json(text, source)


def generation_config_from_build_config(
    build_config: BuildPluginConfig,
    config_file_path: PathLike,
    output_path: PathLike,
) -> GenerationConfig:
    """The GenerationConfig used by the build step for a config file."""
    config_directory = os.fspath(PurePath(config_file_path).parent)
    return GenerationConfig(
        access_level=build_config.generated_source.access_level,
        servers=build_config.generate.servers,
        clients=build_config.generate.clients,
        messages=build_config.generate.messages,
        # Output files are unique: "foo/bar.proto" and "bar/bar.proto" become
        # "foo_bar.grpc.swift" and "bar_bar.grpc.swift".
        file_naming=FileNaming.PATH_TO_UNDERSCORES,
        access_level_on_imports=build_config.generated_source.access_level_on_imports,
        import_paths=tuple(
            f"{config_directory}/{relative_path}"
            for relative_path in build_config.protoc.import_paths
        ),
        protoc_path=build_config.protoc.executable_path,
        output_path=os.fspath(output_path),
    )


def _reject_shared_directories(config_files: Sequence[Path]) -> None:
    by_directory: Dict[Path, List[Path]] = defaultdict(list)
    for path in config_files:
        by_directory[path.parent].append(path)
    for directory, paths in by_directory.items():
        if len(paths) > 1:
            raise DuplicateConfigFiles(os.fspath(directory), [os.fspath(p) for p in paths])


def read_config_files(
    config_file_paths: Sequence[PathLike],
    plugin_work_directory: PathLike,
) -> Dict[Path, GenerationConfig]:
    """Read every config file, keyed by its absolute path, in the order given."""
    paths = [Path(os.path.abspath(p)) for p in config_file_paths]
    _reject_shared_directories(paths)

    configs: Dict[Path, GenerationConfig] = {}
    for path in paths:
        build_config = BuildPluginConfig.load(path)
        configs[path] = generation_config_from_build_config(
            build_config, path, plugin_work_directory
        )
    return configs


def find_applicable_config(
    file: PathLike,
    configs: Mapping[Path, GenerationConfig],
) -> Optional[Tuple[Path, GenerationConfig]]:
    """Find the config for a .proto file: the nearest one in or above its directory.

    Prefixes of the file's directory are tried from longest to shortest and
    the first config whose directory equals the prefix wins.
    """
    file_components = PurePath(file).parts
    for end in reversed(range(len(file_components))):
        prefix = file_components[:end]
        for config_file_path, config in configs.items():
            if PurePath(config_file_path).parts[:-1] == prefix:
                return Path(config_file_path), config
    return None


@dataclass(frozen=True)
class CommandConfig:
    """Options for generating code from the command line."""

    common: GenerationConfig
    verbose: bool = False
    dry_run: bool = False

    @classmethod
    def defaults(cls, output_path: str = "") -> CommandConfig:
        return cls(
            common=GenerationConfig(
                access_level=AccessLevel.INTERNAL,
                servers=True,
                clients=True,
                messages=True,
                file_naming=FileNaming.FULL_PATH,
                access_level_on_imports=False,
                import_paths=(),
                output_path=output_path,
            ),
        )

    def with_common(self, **changes: Any) -> CommandConfig:
        return replace(self, common=replace(self.common, **changes))
