# Copyright (c) 2024 Hostplay Contributors
# MIT License

"""
Hostplay Error Classes.

All custom exceptions for clear error handling and exit codes.
Every error raised while running a host is local to that host: the
engine turns it into a failed task or an aborted host, never a failed run.
"""

from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Process exit codes for the hostplay CLI."""

    SUCCESS = 0
    GENERIC_ERROR = 1
    HOST_FAILED = 2
    PARSE_ERROR = 3
    UNSUPPORTED_FEATURE = 4
    KEYBOARD_INTERRUPT = 130


class HostplayError(Exception):
    """Base exception for all Hostplay errors."""

    exit_code: int = ExitCode.GENERIC_ERROR

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class ParseError(HostplayError):
    """Error parsing a host config, playbook, or other input document."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        line: int | None = None,
        details: str | None = None,
    ) -> None:
        self.file_path = file_path
        self.line = line
        location = ""
        if file_path:
            location = f" in {file_path}"
            if line:
                location += f" at line {line}"
        super().__init__(f"Parse error{location}: {message}", details)


class InventoryError(ParseError):
    """Error in the host config document."""

    def __init__(self, message: str, file_path: str | None = None) -> None:
        super().__init__(message, file_path=file_path)


class ConditionParseError(ParseError):
    """A ``when`` expression does not follow ``IDENT (==|!=) LITERAL``."""

    def __init__(self, expression: str, message: str, position: int | None = None) -> None:
        self.expression = expression
        self.position = position
        where = f" at column {position + 1}" if position is not None else ""
        super().__init__(f"invalid condition {expression!r}{where}: {message}")


class UnsupportedFeatureError(HostplayError):
    """Error when a playbook uses a feature hostplay does not support."""

    exit_code: int = ExitCode.UNSUPPORTED_FEATURE

    def __init__(self, feature: str, suggestion: str | None = None) -> None:
        self.feature = feature
        msg = f"Unsupported feature: {feature}"
        if suggestion:
            msg += f"\n  Suggestion: {suggestion}"
        super().__init__(msg)


class ResolutionError(HostplayError):
    """A playbook references a host address that the inventory cannot resolve."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, address: str, message: str = "host not found in inventory") -> None:
        self.address = address
        super().__init__(f"Cannot resolve host {address}: {message}")


class ConnectionError(HostplayError):
    """Error connecting to a remote host (unreachable, auth, negotiation)."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(
        self,
        host: str,
        message: str,
        connection_type: str | None = None,
        details: str | None = None,
    ) -> None:
        self.host = host
        self.connection_type = connection_type
        conn_info = f" ({connection_type})" if connection_type else ""
        super().__init__(f"Connection to {host}{conn_info} failed: {message}", details)


class ExecutionError(HostplayError):
    """A remote operation could not be carried out on an open session."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, host: str, message: str, details: str | None = None) -> None:
        self.host = host
        super().__init__(f"Execution on {host} failed: {message}", details)


class CommandTimeoutError(ExecutionError):
    """A remote command did not finish within the configured timeout."""

    def __init__(self, host: str, command: str, timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(host, f"timeout after {timeout:g}s", details=f"command: {command[:100]}")


class TransferError(ExecutionError):
    """A file could not be uploaded, downloaded, or copied on the host."""

    def __init__(self, host: str, path: str, message: str) -> None:
        self.path = path
        super().__init__(host, f"{path}: {message}")


class RemoteFileNotFoundError(TransferError):
    """The remote path does not exist."""

    def __init__(self, host: str, path: str) -> None:
        super().__init__(host, path, "no such file")


class EvalError(HostplayError):
    """A ``when`` expression cannot be evaluated against the register state."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, expression: str, message: str) -> None:
        self.expression = expression
        super().__init__(f"Cannot evaluate condition {expression!r}: {message}")


class TemplateError(HostplayError):
    """Error rendering a Jinja2 template."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(
        self,
        message: str,
        template: str | None = None,
        variable: str | None = None,
    ) -> None:
        self.template = template
        self.variable = variable

        details = None
        if template:
            # Truncate long templates
            truncated = template[:100] + "..." if len(template) > 100 else template
            details = f"Template: {truncated}"

        super().__init__(f"Template error: {message}", details)


class TaskFailedError(HostplayError):
    """A task ran but did not complete as specified."""

    exit_code: int = ExitCode.HOST_FAILED


class HostFailedError(HostplayError):
    """A host has aborted during playbook execution."""

    exit_code: int = ExitCode.HOST_FAILED

    def __init__(self, host: str, task: str | None, message: str) -> None:
        self.host = host
        self.task = task
        where = f" at task '{task}'" if task else ""
        super().__init__(f"Host {host} aborted{where}: {message}")
