# This file is part of netrender. See LICENSE file for license information.
"""Errors raised while normalizing, rendering and applying network config."""

from typing import Iterable, List, Optional, Sequence, Union


class NetRenderError(Exception):
    pass


class ValidationError(NetRenderError, ValueError):
    """A raw interface description carries a bad or contradictory field.

    :param interface: the ``interface`` value of the offending spec, or
        None when the description did not name one.
    :param fields: the offending field name, or every field taking part
        in a conflict.
    :param reason: human readable explanation.
    """

    def __init__(
        self,
        interface: Optional[str],
        fields: Union[str, Sequence[str]],
        reason: str,
    ):
        if isinstance(fields, str):
            fields = (fields,)
        self.interface = interface
        self.fields = tuple(fields)
        self.reason = reason
        super().__init__(
            "%s: %s: %s"
            % (interface or "<unnamed>", ", ".join(self.fields), reason)
        )

    @property
    def field(self) -> str:
        return self.fields[0]


class AggregateError(ValidationError):
    """Every validation problem found in a spec or a batch, reported at once.

    ``fields`` is the union of the fields of all collected errors and
    ``interface`` is set only when every error concerns the same one.
    """

    def __init__(self, errors: Iterable[ValidationError]):
        self.errors: List[ValidationError] = list(errors)
        interfaces = set(e.interface for e in self.errors)
        self.interface = interfaces.pop() if len(interfaces) == 1 else None
        fields: List[str] = []
        for error in self.errors:
            fields.extend(f for f in error.fields if f not in fields)
        self.fields = tuple(fields)
        self.reason = "%d problem(s) in network configuration" % len(
            self.errors
        )
        message = self.reason + ":\n"
        message += "\n".join("  - %s" % e for e in self.errors)
        super(ValidationError, self).__init__(message)

    def fields_for(self, interface: str) -> List[str]:
        """Return the offending field names reported for ``interface``."""
        found: List[str] = []
        for error in self.errors:
            if error.interface == interface:
                found.extend(error.fields)
        return found


class TopologyError(NetRenderError):
    """Cyclic or unresolvable dependency between interfaces."""

    def __init__(self, reason: str, interfaces: Sequence[str] = ()):
        self.reason = reason
        self.interfaces = tuple(interfaces)
        if self.interfaces:
            reason = "%s: %s" % (reason, ", ".join(self.interfaces))
        super().__init__(reason)


class UnsupportedConfigError(NetRenderError):
    """A valid config that a particular backend cannot express."""

    def __init__(self, backend: str, interface: str, reason: str):
        self.backend = backend
        self.interface = interface
        self.reason = reason
        super().__init__(
            "%s renderer cannot configure %s: %s"
            % (backend, interface, reason)
        )


class BackendNotFoundError(NetRenderError, RuntimeError):
    pass


class InterfaceFileError(NetRenderError):
    """An interface description file could not be read or parsed."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__("Failed loading %s: %s" % (path, cause))


class ArtifactWriteError(NetRenderError, OSError):
    """Writing a rendered artifact failed part way through a batch.

    Files listed in ``written`` were replaced and are not rolled back,
    ``failed`` is the artifact whose write raised and ``pending`` were
    never attempted.
    """

    def __init__(
        self,
        failed: str,
        written: Sequence[str],
        pending: Sequence[str],
        cause: Optional[BaseException] = None,
    ):
        self.failed = failed
        self.written = list(written)
        self.pending = list(pending)
        self.cause = cause
        super().__init__(
            "Failed writing %s (%s). Already written: %s. Not attempted: %s"
            % (
                failed,
                cause,
                ", ".join(self.written) or "none",
                ", ".join(self.pending) or "none",
            )
        )


class ServiceRestartError(NetRenderError):
    """The networking service did not restart successfully.

    Configuration files are already on disk when this is raised; callers
    may retry with ``restart_service`` alone.
    """

    def __init__(
        self,
        backend: str,
        cmd=None,
        exit_code=None,
        stdout=None,
        stderr=None,
        reason: Optional[str] = None,
    ):
        self.backend = backend
        self.cmd = cmd
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.reason = reason or "exit code %s" % exit_code
        super().__init__(
            "Restarting %s networking failed (%s)\nCommand: %s\n"
            "Stdout: %s\nStderr: %s"
            % (backend, self.reason, cmd, stdout or "-", stderr or "-")
        )


class ServiceRestartTimeoutError(ServiceRestartError):
    def __init__(self, backend: str, cmd=None, timeout=None):
        self.timeout = timeout
        super().__init__(
            backend, cmd=cmd, reason="timed out after %ss" % timeout
        )
