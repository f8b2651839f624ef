"""Command line arguments of the code generation command.

Flags and input files may be separated by ``--``::

    protoc-grpc-swift-generate --access-level public --no-servers -- a.proto b.proto
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from protoc_grpc_swift.config import CommandConfig
from protoc_grpc_swift.errors import (
    ConflictingFlags,
    InvalidArgumentValue,
    MissingArgumentValue,
    MissingInputFile,
    TooManyParameterSeparators,
    UnknownOption,
)
from protoc_grpc_swift.models import AccessLevel, FileNaming

logger = logging.getLogger(__name__)

PROG = "protoc-grpc-swift-generate"
SEPARATOR = "--"

# (flag, negation, component)
_TOGGLES = (
    ("servers", "no-servers", "server"),
    ("clients", "no-clients", "client"),
    ("messages", "no-messages", "message"),
)


@dataclass
class ParsedCommand:
    config: CommandConfig
    input_files: List[str] = field(default_factory=list)
    help_requested: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        usage=f"{PROG} [flags] [--] [input files]",
        description="Generate Swift code for gRPC services and protobuf messages using protoc.",
        add_help=False,
        allow_abbrev=False,
        exit_on_error=False,
    )
    for flag, negation, component in _TOGGLES:
        parser.add_argument(
            f"--{flag}",
            action="count",
            default=0,
            help=f"Indicate that {component} code is to be generated. Generated by default.",
        )
        parser.add_argument(
            f"--{negation}",
            action="count",
            default=0,
            help=f"Indicate that {component} code is not to be generated. Generated by default.",
        )
    parser.add_argument(
        "--file-naming",
        action="append",
        help="The naming scheme for output files [fullPath/pathToUnderscores/dropPath]. "
        "Defaults to fullPath.",
    )
    parser.add_argument(
        "--access-level",
        action="append",
        help="The access level of the generated source [internal/public/package]. "
        "Defaults to internal.",
    )
    parser.add_argument(
        "--access-level-on-imports",
        action="append",
        help="Whether imports should have explicit access levels. Defaults to false.",
    )
    parser.add_argument(
        "--import-path",
        action="append",
        default=[],
        help="The directory in which to search for imports. May be repeated.",
    )
    parser.add_argument("--protoc-path", action="append", help="The path to the protoc binary.")
    parser.add_argument(
        "--proto-path-module-mappings",
        action="append",
        help="The path to a file mapping .proto files to the modules containing their code.",
    )
    parser.add_argument(
        "--output",
        action="append",
        help="The path into which the generated source files are created.",
    )
    parser.add_argument("--verbose", action="store_true", help="Emit verbose output.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print but do not execute the protoc commands.",
    )
    parser.add_argument("--help", action="store_true", help="Print this help.")
    return parser


def format_help() -> str:
    return build_parser().format_help()


def split_arguments(arguments: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split the arguments into flags and input files around the ``--`` separator."""
    groups: List[List[str]] = [[]]
    for argument in arguments:
        if argument == SEPARATOR:
            groups.append([])
        else:
            groups[-1].append(argument)

    if len(groups) > 2:
        raise TooManyParameterSeparators()
    if len(groups) == 2:
        return groups[0], groups[1]
    return groups[0], []


def _single_value(flag: str, values: Optional[List[str]]) -> Optional[str]:
    if not values:
        return None
    if len(values) > 1:
        logger.warning(
            "Warning: '--%s' was unexpectedly repeated, the first value will be used.", flag
        )
    return values[0]


def _parse_bool(flag: str, value: str) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidArgumentValue(flag, value)


def parse_command_arguments(arguments: Sequence[str], default_output: str = "") -> ParsedCommand:
    """Parse command line arguments into a CommandConfig and the input files.

    Raises a CommandPluginError for anything which cannot be used.
    """
    flags, input_files = split_arguments(arguments)

    parser = build_parser()
    try:
        namespace, remaining = parser.parse_known_args(flags)
    except argparse.ArgumentError as e:
        name = e.argument_name.lstrip("-") if e.argument_name else ""
        raise MissingArgumentValue(name) from e

    for argument in remaining:
        if argument.startswith("-"):
            raise UnknownOption(argument)
    input_files = remaining + input_files

    config = CommandConfig.defaults(output_path=default_output)
    if namespace.help:
        return ParsedCommand(config=config, help_requested=True)

    changes = {}
    for flag, negation, _ in _TOGGLES:
        enabled = getattr(namespace, flag.replace("-", "_"))
        disabled = getattr(namespace, negation.replace("-", "_"))
        if enabled and disabled:
            raise ConflictingFlags(flag, negation)
        if disabled:
            changes[flag] = False

    access_level = _single_value("access-level", namespace.access_level)
    if access_level is not None:
        try:
            changes["access_level"] = AccessLevel.parse(access_level)
        except ValueError:
            raise InvalidArgumentValue("access-level", access_level) from None

    file_naming = _single_value("file-naming", namespace.file_naming)
    if file_naming is not None:
        try:
            changes["file_naming"] = FileNaming.parse(file_naming)
        except ValueError:
            raise InvalidArgumentValue("file-naming", file_naming) from None

    access_level_on_imports = _single_value(
        "access-level-on-imports", namespace.access_level_on_imports
    )
    if access_level_on_imports is not None:
        changes["access_level_on_imports"] = _parse_bool(
            "access-level-on-imports", access_level_on_imports
        )

    changes["import_paths"] = tuple(namespace.import_path)

    protoc_path = _single_value("protoc-path", namespace.protoc_path)
    if protoc_path is not None:
        changes["protoc_path"] = protoc_path

    module_mappings = _single_value(
        "proto-path-module-mappings", namespace.proto_path_module_mappings
    )
    if module_mappings is not None:
        changes["module_mappings_path"] = module_mappings

    output = _single_value("output", namespace.output)
    if output is not None:
        changes["output_path"] = output

    if not input_files:
        raise MissingInputFile()

    config = CommandConfig(
        common=config.with_common(**changes).common,
        verbose=namespace.verbose,
        dry_run=namespace.dry_run,
    )
    return ParsedCommand(config=config, input_files=input_files)
