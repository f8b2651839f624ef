from pathlib import Path

import pytest

from protoc_grpc_swift.models import FileNaming
from protoc_grpc_swift.paths import GRPC_SWIFT_EXTENSION, PB_SWIFT_EXTENSION, derive_output_file_path


class TestDeriveOutputFilePath:
    @pytest.mark.parametrize(
        "file_naming, expected",
        [
            (FileNaming.FULL_PATH, "/out/foo/bar/baz.grpc.swift"),
            (FileNaming.PATH_TO_UNDERSCORES, "/out/foo_bar_baz.grpc.swift"),
            (FileNaming.DROP_PATH, "/out/baz.grpc.swift"),
        ],
    )
    def test_naming_schemes(self, file_naming, expected):
        path = derive_output_file_path(
            "/src/foo/bar/baz.proto", file_naming, "/src", "/out", GRPC_SWIFT_EXTENSION
        )
        assert path == Path(expected)

    def test_file_in_base_directory(self):
        path = derive_output_file_path(
            "/src/baz.proto", FileNaming.PATH_TO_UNDERSCORES, "/src", "/out", PB_SWIFT_EXTENSION
        )
        assert path == Path("/out/baz.pb.swift")

    def test_stops_stripping_at_first_mismatch(self):
        path = derive_output_file_path(
            "/src/a/x/b/c.proto", FileNaming.FULL_PATH, "/src/b/x", "/out", GRPC_SWIFT_EXTENSION
        )
        assert path == Path("/out/a/x/b/c.grpc.swift")

    def test_relative_names(self):
        path = derive_output_file_path(
            "foo/bar.proto", FileNaming.FULL_PATH, "", "", ".grpc.json"
        )
        assert path.as_posix() == "foo/bar.grpc.json"

    def test_extension_without_leading_dot(self):
        path = derive_output_file_path("/s/x.proto", FileNaming.DROP_PATH, "/s", "/o", "pb.swift")
        assert path == Path("/o/x.pb.swift")

    def test_rejects_non_proto_input(self):
        with pytest.raises(AssertionError):
            derive_output_file_path("/s/x.txt", FileNaming.DROP_PATH, "/s", "/o", ".pb.swift")

    def test_unique_names_for_same_base_name(self):
        first = derive_output_file_path(
            "/s/foo/bar.proto", FileNaming.PATH_TO_UNDERSCORES, "/s", "/o", GRPC_SWIFT_EXTENSION
        )
        second = derive_output_file_path(
            "/s/baz/bar.proto", FileNaming.PATH_TO_UNDERSCORES, "/s", "/o", GRPC_SWIFT_EXTENSION
        )
        assert first != second


class TestRelativeInputs:
    @pytest.mark.parametrize(
        "file_naming, expected",
        [
            (FileNaming.FULL_PATH, "out/sub/x.pb.x"),
            (FileNaming.PATH_TO_UNDERSCORES, "out/sub_x.pb.x"),
            (FileNaming.DROP_PATH, "out/x.pb.x"),
        ],
    )
    def test_naming_schemes(self, file_naming, expected):
        path = derive_output_file_path("root/sub/x.proto", file_naming, "root", "out", ".pb.x")
        assert path.as_posix() == expected


class TestPathObjects:
    def test_accepts_pathlib_arguments(self):
        path = derive_output_file_path(
            Path("/src/foo/bar.proto"),
            FileNaming.PATH_TO_UNDERSCORES,
            Path("/src"),
            Path("/out"),
            GRPC_SWIFT_EXTENSION,
        )
        assert path == Path("/out/foo_bar.grpc.swift")
