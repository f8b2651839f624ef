import io
import json
import types

import pytest
from google.protobuf.compiler import plugin_pb2

from protoc_grpc_swift.errors import InvalidParameterValue, UnknownParameter, UnsupportedParameter
from protoc_grpc_swift.models import AccessLevel, FileNaming
from protoc_grpc_swift.plugin import generate_code, main
from protoc_grpc_swift.plugin_options import GeneratorOptions, parse_parameter

from proto_builders import make_file, make_test_service_file


class TestParseParameter:
    def test_empty(self):
        assert parse_parameter(None) == []
        assert parse_parameter("") == []

    def test_pairs_are_trimmed(self):
        assert parse_parameter(" Visibility = Public ,Client=false,,Flag") == [
            ("Visibility", "Public"),
            ("Client", "false"),
            ("Flag", ""),
        ]


class TestGeneratorOptions:
    def test_defaults(self):
        options = GeneratorOptions.parse("")
        assert options.access_level is AccessLevel.INTERNAL
        assert options.generate_client and options.generate_server
        assert options.file_naming is FileNaming.FULL_PATH
        assert options.extra_module_imports == []
        assert options.module_names.grpc_protobuf == "GRPCProtobuf"

    def test_all_keys(self):
        options = GeneratorOptions.parse(
            "Visibility=Package,Server=false,Client=TRUE,FileNaming=PathToUnderscores,"
            "ExtraModuleImports=Foo,ExtraModuleImports=Bar,GRPCModuleName=Core,"
            "GRPCProtobufModuleName=GP,SwiftProtobufModuleName=SP,"
            "Availability=macOS 15.0,UseAccessLevelOnImports=true"
        )
        assert options.access_level is AccessLevel.PACKAGE
        assert options.generate_server is False
        assert options.generate_client is True
        assert options.file_naming is FileNaming.PATH_TO_UNDERSCORES
        assert options.extra_module_imports == ["Foo", "Bar"]
        assert options.module_names.grpc_core == "Core"
        assert options.module_names.grpc_protobuf == "GP"
        assert options.module_names.swift_protobuf == "SP"
        assert options.availability_overrides == [("macOS", "15.0")]
        assert options.access_level_on_imports is True

    def test_visibility_must_match_exactly(self):
        with pytest.raises(InvalidParameterValue):
            GeneratorOptions.parse("Visibility=public")

    @pytest.mark.parametrize(
        "parameter",
        ["Server=maybe", "FileNaming=fullpath", "ExtraModuleImports=", "Availability=macOS"],
    )
    def test_invalid_values(self, parameter):
        with pytest.raises(InvalidParameterValue):
            GeneratorOptions.parse(parameter)

    def test_unknown_key(self):
        with pytest.raises(UnknownParameter):
            GeneratorOptions.parse("Frobnicate=1")

    def test_reflection_data_unsupported(self):
        with pytest.raises(UnsupportedParameter, match="descriptor sets"):
            GeneratorOptions.parse("ReflectionData=true")

    def test_module_mappings_use_swift_protobuf_module_name(self, tmp_path):
        path = tmp_path / "maps.asciipb"
        path.write_text('mapping { module_name: "A" proto_file_path: "a.proto" }\n')
        options = GeneratorOptions.parse(
            f"ProtoPathModuleMappings={path},SwiftProtobufModuleName=SP"
        )
        mappings = options.load_module_mappings()
        assert mappings.module_name("a.proto") == "A"
        assert mappings.module_name("google/protobuf/any.proto") == "SP"


def _request(parameter="", *files):
    request = plugin_pb2.CodeGeneratorRequest(parameter=parameter)
    for proto in files:
        request.proto_file.add().CopyFrom(proto)
    return request


class TestGenerateCode:
    def test_emits_request_for_files_with_services(self):
        messages_only = make_file("messages.proto", package="test", messages=["Only"])
        request = _request(
            "Visibility=Public,FileNaming=DropPath",
            messages_only,
            make_test_service_file(),
        )
        request.file_to_generate.extend(["messages.proto", "test-service.proto"])

        response = generate_code(request)

        assert not response.error
        assert [f.name for f in response.file] == ["test-service.grpc.json"]
        content = json.loads(response.file[0].content)
        assert content["options"]["accessLevel"] == "Public"
        assert content["request"]["fileName"] == "test-service.proto"
        assert content["request"]["services"][0]["name"]["base"] == "TestService"
        assert response.supported_features & plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    def test_full_path_naming(self):
        proto = make_file(
            "nested/dir/svc.proto",
            package="svc",
            messages=["M"],
            services=[("Svc", [("Call", ".svc.M", ".svc.M", False, False)])],
        )
        request = _request("", proto)
        request.file_to_generate.append("nested/dir/svc.proto")
        response = generate_code(request)
        assert [f.name for f in response.file] == ["nested/dir/svc.grpc.json"]

    def test_errors_are_reported_in_response(self):
        request = _request("Bogus=1", make_test_service_file())
        request.file_to_generate.append("test-service.proto")
        response = generate_code(request)
        assert "Unknown generation parameter 'Bogus'" in response.error
        assert len(response.file) == 0

    def test_missing_file_to_generate(self):
        request = _request("", make_test_service_file())
        request.file_to_generate.append("missing.proto")
        response = generate_code(request)
        assert "missing.proto" in response.error


def _binary_stream(data=b""):
    return types.SimpleNamespace(buffer=io.BytesIO(data))


class TestMain:
    def test_writes_response_to_stdout(self, monkeypatch):
        request = _request("", make_test_service_file())
        request.file_to_generate.append("test-service.proto")
        stdout = _binary_stream()
        monkeypatch.setattr("sys.stdin", _binary_stream(request.SerializeToString()))
        monkeypatch.setattr("sys.stdout", stdout)

        assert main() == 0

        response = plugin_pb2.CodeGeneratorResponse.FromString(stdout.buffer.getvalue())
        assert not response.error
        assert [f.name for f in response.file] == ["test-service.grpc.json"]

    def test_malformed_request(self, monkeypatch):
        stdout = _binary_stream()
        stderr = io.StringIO()
        monkeypatch.setattr("sys.stdin", _binary_stream(b"\xff\xff\xff"))
        monkeypatch.setattr("sys.stdout", stdout)
        monkeypatch.setattr("sys.stderr", stderr)

        assert main() == 1

        assert stdout.buffer.getvalue() == b""
        assert "Invalid CodeGeneratorRequest" in stderr.getvalue()
