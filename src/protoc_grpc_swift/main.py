from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Mapping, Optional, Sequence

from protoc_grpc_swift.build_plugin import create_build_commands, discover_sources, run_build_commands
from protoc_grpc_swift.code_gen_parser import build_request
from protoc_grpc_swift.command_config import format_help, parse_command_arguments
from protoc_grpc_swift.config import CommandConfig
from protoc_grpc_swift.descriptor.loader import compile_descriptor_set, read_descriptor_set
from protoc_grpc_swift.errors import GeneratorError
from protoc_grpc_swift.models import AccessLevel
from protoc_grpc_swift.module_mappings import ProtoFileToModuleMappings
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


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(stream=sys.stderr, format="%(message)s")
    logging.getLogger("protoc_grpc_swift").setLevel(logging.DEBUG if verbose else logging.INFO)


def perform_command(
    command_config: CommandConfig,
    input_files: Sequence[str],
    locator: ToolLocator,
    environ: Optional[Mapping[str, str]] = None,
) -> List[ProtocInvocation]:
    """Generate code for the input files, or only print how with ``dry_run``.

    Returns the protoc invocations, in the order they were (or would be) run.
    """
    config = command_config.common
    logger.debug("InputFiles: %s", ", ".join(input_files))

    protoc_path = derive_protoc_path(config, locator, environ)
    output_directory = config.output_path
    logger.debug("Generated files will be written to: '%s'", output_directory)

    invocations = []
    if config.clients or config.servers:
        arguments = construct_protoc_gen_grpc_swift_arguments(
            config,
            input_files,
            config.import_paths,
            locator.require(PROTOC_GEN_GRPC_SWIFT),
            output_directory,
        )
        invocations.append(("gRPC Swift", ProtocInvocation(protoc_path, tuple(arguments))))
    if config.messages:
        arguments = construct_protoc_gen_swift_arguments(
            config,
            input_files,
            config.import_paths,
            locator.require(PROTOC_GEN_SWIFT),
            output_directory,
        )
        invocations.append(("Swift Protobuf", ProtocInvocation(protoc_path, tuple(arguments))))

    for kind, invocation in invocations:
        if command_config.dry_run:
            print(invocation.render())
            continue
        if command_config.verbose:
            logger.info("%s", invocation.render())
        run_protoc(invocation)
        print(f"Generated {kind} files for {len(input_files)} input file(s).")

    return [invocation for _, invocation in invocations]


def generate_main(argv: Optional[Sequence[str]] = None) -> int:
    """Generate Swift code for the .proto files given on the command line."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    _configure_logging()

    if not arguments:
        print(format_help(), file=sys.stderr)
        return 1

    try:
        parsed = parse_command_arguments(arguments, default_output=os.getcwd())
    except GeneratorError as e:
        logger.error("error: %s", e)
        return 1

    if parsed.help_requested:
        print(format_help())
        return 0

    _configure_logging(parsed.config.verbose)
    try:
        perform_command(parsed.config, parsed.input_files, ToolLocator())
    except GeneratorError as e:
        logger.error("error: %s", e)
        return 1
    return 0


def build_main(argv: Optional[Sequence[str]] = None) -> int:
    """Generate Swift code for every .proto file under a source directory."""
    parser = argparse.ArgumentParser(
        prog="protoc-grpc-swift-build",
        description="Generate Swift code for a source directory configured with "
        "grpc-swift-proto-generator-config.json files.",
    )
    parser.add_argument(
        "--source-dir",
        required=True,
        help="Directory to scan for .proto files and config files",
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Directory into which the generated files are written",
    )
    parser.add_argument(
        "--tool-dir",
        action="append",
        default=[],
        help="Directory containing protoc and its plugins. May be repeated.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the protoc commands only")
    parser.add_argument("--verbose", action="store_true", help="Emit verbose output")
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        proto_files, config_files = discover_sources(args.source_dir)
        if not proto_files:
            logger.warning("No .proto files found under %s", args.source_dir)
            return 0
        logger.debug(
            "Found %d proto file(s) and %d config file(s)", len(proto_files), len(config_files)
        )
        commands = create_build_commands(
            proto_files,
            config_files,
            args.output,
            ToolLocator(args.tool_dir),
        )
        generated = run_build_commands(commands, dry_run=args.dry_run)
    except GeneratorError as e:
        logger.error("error: %s", e)
        return 1

    for path in generated:
        print(f"  Generated: {path}")
    return 0


def request_main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the code generation requests of .proto files as JSON."""
    parser = argparse.ArgumentParser(
        prog="protoc-grpc-swift-request",
        description="Print the gRPC code generation request of each .proto file as JSON.",
    )
    parser.add_argument("proto_files", nargs="+", help=".proto files to describe")
    parser.add_argument(
        "--import-path",
        action="append",
        default=[],
        help="The directory in which to search for imports. May be repeated.",
    )
    parser.add_argument("--protoc-path", default="protoc", help="The path to the protoc binary")
    parser.add_argument(
        "--descriptor-set",
        help="Read an existing descriptor set instead of running protoc",
    )
    parser.add_argument(
        "--access-level",
        default="internal",
        help="The access level of imported modules [internal/public/package]",
    )
    parser.add_argument(
        "--extra-module-import",
        action="append",
        default=[],
        help="An additional module to import. May be repeated.",
    )
    parser.add_argument(
        "--proto-path-module-mappings",
        help="The path to a file mapping .proto files to the modules containing their code",
    )
    args = parser.parse_args(argv)
    _configure_logging()

    try:
        access_level = AccessLevel.parse(args.access_level)
    except ValueError as e:
        parser.error(str(e))

    try:
        if args.descriptor_set:
            descriptor_set = read_descriptor_set(args.descriptor_set)
        else:
            descriptor_set = compile_descriptor_set(
                args.proto_files, args.import_path, args.protoc_path
            )
        module_mappings = None
        if args.proto_path_module_mappings:
            module_mappings = ProtoFileToModuleMappings.load(args.proto_path_module_mappings)

        requests = []
        for proto_file in args.proto_files:
            name = _descriptor_name(proto_file, args.import_path)
            schema_file = descriptor_set.require_file(name)
            request = build_request(
                schema_file,
                module_mappings=module_mappings,
                extra_imports=args.extra_module_import,
                access_level=access_level,
            )
            requests.append(request.to_dict())
    except GeneratorError as e:
        logger.error("error: %s", e)
        return 1

    print(json.dumps(requests, indent=2))
    return 0


def _descriptor_name(proto_file: str, import_paths: Sequence[str]) -> str:
    """The name protoc gives a file: its path relative to the import path containing it.

    Without a containing import path protoc uses the working directory.
    """
    proto_file = os.path.normpath(proto_file)
    for import_path in list(import_paths) + [os.curdir]:
        relative = os.path.relpath(proto_file, import_path)
        if relative != os.pardir and not relative.startswith(os.pardir + os.sep):
            return relative.replace(os.sep, "/")
    return proto_file.replace(os.sep, "/")


if __name__ == "__main__":
    sys.exit(generate_main())
