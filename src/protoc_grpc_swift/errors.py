"""Exceptions raised while configuring and running code generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional

if TYPE_CHECKING:
    from protoc_grpc_swift.protoc import ProtocInvocation


class GeneratorError(Exception):
    """Base class for every error reported to the user."""


# -- command line --


class CommandPluginError(GeneratorError):
    """Raised when the command line arguments cannot be used."""


class MissingArgumentValue(CommandPluginError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provided option '--{name}' does not have a value.")


class InvalidArgumentValue(CommandPluginError):
    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value '{value}', for '{name}'.")


class MissingInputFile(CommandPluginError):
    def __init__(self):
        super().__init__("No input file(s) specified.")


class UnknownOption(CommandPluginError):
    def __init__(self, option: str):
        self.option = option
        super().__init__(f"Provided option is unknown: {option}.")


class ConflictingFlags(CommandPluginError):
    def __init__(self, flag: str, negation: str):
        self.flag = flag
        self.negation = negation
        super().__init__(f"Flags '--{flag}' and '--{negation}' cannot be used together.")


class TooManyParameterSeparators(CommandPluginError):
    def __init__(self):
        super().__init__("Unexpected parameter structure, too many '--' separators.")


# -- build step --


class BuildPluginError(GeneratorError):
    """Raised when build commands cannot be created for a source tree."""


class NoApplicableConfigFound(BuildPluginError):
    def __init__(self, input_file: str):
        self.input_file = input_file
        super().__init__(
            f"No config file found which applies to '{input_file}'. The target "
            f"source directory or one of its parents must contain a config file."
        )


class InvalidInputFileExtension(BuildPluginError):
    def __init__(self, input_files: Iterable[str]):
        self.input_files: List[str] = list(input_files)
        listed = ", ".join(self.input_files)
        super().__init__(f"Invalid input file(s), expected a '.proto' extension: {listed}")


class DuplicateConfigFiles(BuildPluginError):
    def __init__(self, directory: str, config_files: Iterable[str]):
        self.directory = directory
        self.config_files: List[str] = list(config_files)
        super().__init__(
            f"Found more than one config file in '{directory}': "
            f"{', '.join(self.config_files)}"
        )


class ConfigurationFileError(GeneratorError):
    """Raised when a config file cannot be read or decoded."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Invalid config file '{path}': {message}")


# -- external tools --


class ToolNotFound(GeneratorError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not find the '{name}' executable.")


class ExternalToolFailure(GeneratorError):
    """Raised when protoc exits with a non-zero status or cannot be started."""

    def __init__(
        self,
        invocation: "ProtocInvocation",
        returncode: Optional[int],
        stderr: str = "",
        stdout: str = "",
    ):
        self.invocation = invocation
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        if returncode is None:
            reason = "could not be started"
        else:
            reason = f"exited with status {returncode}"
        message = f"'{invocation.executable}' {reason}.\nInvocation:\n{invocation.render()}"
        if stderr.strip():
            message += f"\nOutput:\n{stderr.strip()}"
        super().__init__(message)


# -- plugin --


class GenerationError(GeneratorError):
    """Raised when the protoc plugin parameter string is invalid."""


class UnknownParameter(GenerationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown generation parameter '{name}'")


class InvalidParameterValue(GenerationError):
    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"Unknown value for generation parameter '{name}': '{value}'")


class UnsupportedParameter(GenerationError):
    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Unsupported parameter '{name}': {message}")


class ModuleMappingError(GeneratorError):
    """Raised when a proto file to module mapping file is invalid."""


class DescriptorError(GeneratorError):
    """Raised when a descriptor set does not contain what was asked for."""
