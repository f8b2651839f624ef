"""protoc plugin emitting the code generation request of each file as JSON.

Usage::

    protoc --plugin=protoc-gen-grpc-swift-request=$(which protoc-gen-grpc-swift-request) \
      --grpc-swift-request_out=out --grpc-swift-request_opt=Visibility=Public foo.proto
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict

from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

from protoc_grpc_swift.code_gen_parser import ProtobufCodeGenParser
from protoc_grpc_swift.descriptor.schema import DescriptorSet
from protoc_grpc_swift.errors import GeneratorError
from protoc_grpc_swift.paths import derive_output_file_path
from protoc_grpc_swift.plugin_options import GeneratorOptions

logger = logging.getLogger(__name__)

GRPC_REQUEST_EXTENSION = ".grpc.json"


def _options_to_dict(options: GeneratorOptions) -> Dict[str, Any]:
    return {
        "accessLevel": options.access_level.value,
        "accessLevelOnImports": options.access_level_on_imports,
        "client": options.generate_client,
        "server": options.generate_server,
        "moduleNames": {
            "grpcCore": options.module_names.grpc_core,
            "grpcProtobuf": options.module_names.grpc_protobuf,
            "swiftProtobuf": options.module_names.swift_protobuf,
        },
        "availability": [
            {"os": os_name, "version": version}
            for os_name, version in options.availability_overrides
        ],
    }


def generate_code(request: plugin_pb2.CodeGeneratorRequest) -> plugin_pb2.CodeGeneratorResponse:
    """Handle one request from protoc. Errors are reported in the response."""
    response = plugin_pb2.CodeGeneratorResponse()
    response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    try:
        options = GeneratorOptions.parse(request.parameter)
        parser = ProtobufCodeGenParser(
            module_mappings=options.load_module_mappings(),
            extra_module_imports=options.extra_module_imports,
            access_level=options.access_level,
            module_names=options.module_names,
        )
        descriptor_set = DescriptorSet(request.proto_file)

        for name in request.file_to_generate:
            schema_file = descriptor_set.require_file(name)
            if not schema_file.services:
                logger.debug("Skipping %s: no services", name)
                continue

            code_generation_request = parser.parse(schema_file)
            output_name = derive_output_file_path(
                name, options.file_naming, "", "", GRPC_REQUEST_EXTENSION
            ).as_posix()
            content = {
                "options": _options_to_dict(options),
                "request": code_generation_request.to_dict(),
            }
            response.file.add(name=output_name, content=json.dumps(content, indent=2) + "\n")
    except GeneratorError as e:
        response.ClearField("file")
        response.error = str(e)

    return response


def main() -> int:
    data = sys.stdin.buffer.read()
    try:
        request = plugin_pb2.CodeGeneratorRequest.FromString(data)
    except DecodeError as e:
        print(f"error: Invalid CodeGeneratorRequest: {e}", file=sys.stderr)
        return 1
    response = generate_code(request)
    sys.stdout.buffer.write(response.SerializeToString())
    sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
