import os
import stat
import subprocess

import pytest

from protoc_grpc_swift import protoc
from protoc_grpc_swift.errors import ExternalToolFailure, ToolNotFound
from protoc_grpc_swift.models import AccessLevel, FileNaming, GenerationConfig
from protoc_grpc_swift.protoc import (
    ProtocInvocation,
    ToolLocator,
    construct_protoc_gen_grpc_swift_arguments,
    construct_protoc_gen_swift_arguments,
    derive_protoc_path,
    run_protoc,
)


def _make_executable(directory, name):
    path = directory / name
    path.write_text("#!/bin/sh\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


class TestConstructArguments:
    def setup_method(self):
        self.config = GenerationConfig(
            access_level=AccessLevel.PUBLIC,
            servers=False,
            clients=True,
            file_naming=FileNaming.DROP_PATH,
            access_level_on_imports=True,
        )

    def test_protoc_gen_swift(self):
        args = construct_protoc_gen_swift_arguments(
            self.config,
            ["a.proto", "b/c.proto"],
            ["/protos", "/more"],
            "/bin/protoc-gen-swift",
            "/out",
        )
        assert args == [
            "--plugin=protoc-gen-swift=/bin/protoc-gen-swift",
            "--swift_out=/out",
            "--proto_path=/protos",
            "--proto_path=/more",
            "--swift_opt=Visibility=Public",
            "--swift_opt=FileNaming=DropPath",
            "--swift_opt=UseAccessLevelOnImports=true",
            "a.proto",
            "b/c.proto",
        ]

    def test_protoc_gen_grpc_swift(self):
        args = construct_protoc_gen_grpc_swift_arguments(
            self.config,
            ["a.proto"],
            ["/protos"],
            "/bin/protoc-gen-grpc-swift",
            "/out",
        )
        assert args == [
            "--plugin=protoc-gen-grpc-swift=/bin/protoc-gen-grpc-swift",
            "--grpc-swift_out=/out",
            "--proto_path=/protos",
            "--grpc-swift_opt=Visibility=Public",
            "--grpc-swift_opt=Server=false",
            "--grpc-swift_opt=Client=true",
            "--grpc-swift_opt=FileNaming=DropPath",
            "--grpc-swift_opt=UseAccessLevelOnImports=true",
            "a.proto",
        ]

    def test_module_mappings_option(self):
        config = GenerationConfig(module_mappings_path="/maps.asciipb")
        swift = construct_protoc_gen_swift_arguments(config, ["a.proto"], [], "p", "o")
        grpc = construct_protoc_gen_grpc_swift_arguments(config, ["a.proto"], [], "p", "o")
        assert "--swift_opt=ProtoPathModuleMappings=/maps.asciipb" in swift
        assert "--grpc-swift_opt=ProtoPathModuleMappings=/maps.asciipb" in grpc
        assert swift[-1] == "a.proto"
        assert grpc[-1] == "a.proto"

    def test_defaults_render_internal_full_path(self):
        args = construct_protoc_gen_swift_arguments(GenerationConfig(), [], [], "p", "o")
        assert "--swift_opt=Visibility=Internal" in args
        assert "--swift_opt=FileNaming=FullPath" in args
        assert "--swift_opt=UseAccessLevelOnImports=false" in args


class TestToolLocator:
    def test_finds_bundled_tool(self, tmp_path):
        path = _make_executable(tmp_path, "protoc-gen-swift")
        locator = ToolLocator([tmp_path])
        assert locator.find("protoc-gen-swift") == path
        assert locator.require("protoc-gen-swift") == path

    def test_missing_tool(self, tmp_path, monkeypatch):
        monkeypatch.setattr(protoc.shutil, "which", lambda name: None)
        locator = ToolLocator([tmp_path])
        assert locator.find("protoc-gen-swift") is None
        with pytest.raises(ToolNotFound, match="protoc-gen-swift"):
            locator.require("protoc-gen-swift")

    def test_falls_back_to_path(self, tmp_path, monkeypatch):
        monkeypatch.setattr(protoc.shutil, "which", lambda name: f"/usr/bin/{name}")
        assert ToolLocator([tmp_path]).require("protoc") == "/usr/bin/protoc"


class TestDeriveProtocPath:
    def test_explicit_path_wins(self, tmp_path):
        _make_executable(tmp_path, "protoc")
        config = GenerationConfig(protoc_path="/custom/protoc")
        path = derive_protoc_path(config, ToolLocator([tmp_path]), {"PROTOC_PATH": "/env/protoc"})
        assert path == "/custom/protoc"

    def test_bundled_before_environment(self, tmp_path):
        bundled = _make_executable(tmp_path, "protoc")
        path = derive_protoc_path(
            GenerationConfig(), ToolLocator([tmp_path]), {"PROTOC_PATH": "/env/protoc"}
        )
        assert path == bundled

    def test_environment_before_path(self, tmp_path, monkeypatch):
        monkeypatch.setattr(protoc.shutil, "which", lambda name: "/usr/bin/protoc")
        path = derive_protoc_path(
            GenerationConfig(), ToolLocator([tmp_path]), {"PROTOC_PATH": "/env/protoc"}
        )
        assert path == "/env/protoc"

    def test_path_lookup(self, tmp_path, monkeypatch):
        monkeypatch.setattr(protoc.shutil, "which", lambda name: "/usr/bin/protoc")
        assert derive_protoc_path(GenerationConfig(), ToolLocator([tmp_path]), {}) == "/usr/bin/protoc"

    def test_not_found(self, tmp_path, monkeypatch):
        monkeypatch.setattr(protoc.shutil, "which", lambda name: None)
        with pytest.raises(ToolNotFound):
            derive_protoc_path(GenerationConfig(), ToolLocator([tmp_path]), {})


class TestProtocInvocation:
    def test_render(self):
        invocation = ProtocInvocation("/bin/protoc", ("--swift_out=/out", "a.proto"))
        assert invocation.render() == "/bin/protoc \\\n  --swift_out=/out \\\n  a.proto"
        assert invocation.command == ["/bin/protoc", "--swift_out=/out", "a.proto"]


class TestRunProtoc:
    def test_success(self, monkeypatch):
        calls = []

        def fake_run(command, capture_output, text):
            calls.append(command)
            return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

        monkeypatch.setattr(protoc.subprocess, "run", fake_run)
        run_protoc(ProtocInvocation("protoc", ("a.proto",)))
        assert calls == [["protoc", "a.proto"]]

    def test_non_zero_exit(self, monkeypatch):
        def fake_run(command, capture_output, text):
            return subprocess.CompletedProcess(command, 1, stdout="", stderr="a.proto: File not found.\n")

        monkeypatch.setattr(protoc.subprocess, "run", fake_run)
        with pytest.raises(ExternalToolFailure) as excinfo:
            run_protoc(ProtocInvocation("protoc", ("a.proto",)))
        assert excinfo.value.returncode == 1
        assert "exited with status 1" in str(excinfo.value)
        assert "File not found" in str(excinfo.value)

    def test_cannot_start(self, monkeypatch):
        def fake_run(command, capture_output, text):
            raise FileNotFoundError(os.strerror(2))

        monkeypatch.setattr(protoc.subprocess, "run", fake_run)
        with pytest.raises(ExternalToolFailure, match="could not be started") as excinfo:
            run_protoc(ProtocInvocation("/missing/protoc", ()))
        assert excinfo.value.returncode is None
