# This file is part of netrender. See LICENSE file for license information.
"""Run the backend tools and locate them below a target root."""

import collections
import logging
import os
import subprocess
import time
from errno import ENOEXEC
from typing import List, Optional, Sequence, Union

LOG = logging.getLogger(__name__)

SubpResult = collections.namedtuple("SubpResult", ["stdout", "stderr"])

Command = Union[List[str], List[bytes]]


def _indent(text, indent_level=8):
    """Indent all but the first line of text, dropping trailing newlines."""
    if isinstance(text, bytes):
        return text.rstrip(b"\n").replace(b"\n", b"\n" + b" " * indent_level)
    return text.rstrip("\n").replace("\n", "\n" + " " * indent_level)


def _as_text(value):
    return value.decode() if isinstance(value, bytes) else str(value)


class ProcessExecutionError(IOError):
    """A command could not be started or exited with a disallowed code.

    Attributes that were not supplied hold ``empty_attr``.
    """

    empty_attr = "-"

    def __init__(
        self,
        stdout=None,
        stderr=None,
        exit_code=None,
        cmd=None,
        description=None,
        reason=None,
        errno=None,
    ):
        if not description:
            if not exit_code and errno == ENOEXEC:
                description = "Exec format error. Missing #! in script?"
            else:
                description = "Unexpected error while running command."
        self.description = description
        self.cmd = cmd or self.empty_attr
        self.exit_code = (
            exit_code if isinstance(exit_code, int) else self.empty_attr
        )
        self.stdout = self._output(stdout)
        self.stderr = self._output(stderr)
        self.reason = reason or self.empty_attr

        lines = [self.description]
        for label, value in (
            ("Command", self.cmd),
            ("Exit code", self.exit_code),
            ("Reason", self.reason),
            ("Stdout", self.stdout),
            ("Stderr", self.stderr),
        ):
            lines.append("%s: %s" % (label, _as_text(value)))
        IOError.__init__(self, "\n".join(lines))
        # IOError.__init__ resets errno
        if errno:
            self.errno = errno

    def _output(self, data):
        if data is None:
            return self.empty_attr
        return _indent(data) if data else data


class ProcessTimeoutError(ProcessExecutionError):
    """The command did not finish before its timeout and was killed."""

    def __init__(self, cmd=None, timeout=None, stdout=None, stderr=None):
        self.timeout = timeout
        super().__init__(
            stdout=stdout,
            stderr=stderr,
            cmd=cmd,
            description="Command timed out.",
            reason="killed after %ss" % timeout,
        )


def encode_command(args: Command) -> List[bytes]:
    """Return args as bytes, rejecting anything that is not text."""
    encoded = []
    for component in args:
        if isinstance(component, bytes):
            encoded.append(component)
        elif isinstance(component, str):
            encoded.append(component.encode("utf-8"))
        else:
            LOG.warning("Running invalid command: %s", args)
            raise ProcessExecutionError(
                cmd=args, reason="Running invalid command: %s" % (args,)
            )
    return encoded


def subp(
    args: Command,
    *,
    rcs: Optional[Sequence[int]] = None,
    capture=True,
    decode="replace",
    update_env=None,
    timeout: Optional[float] = None,
) -> SubpResult:
    """Run args and return its output.

    :param rcs: allowed exit codes, default [0].
    :param capture: collect stdout and stderr; when False both are None.
    :param decode: codec error handler used to decode the output, or False
        to return bytes.
    :param update_env: variables added to a copy of os.environ.
    :param timeout: seconds the command may run before it is killed and
        ProcessTimeoutError raised.
    :raises: ProcessExecutionError when the command can not be started or
        exits with a code outside rcs.
    """
    rcs = [0] if rcs is None else rcs
    env = dict(os.environ, **(update_env or {}))
    pipe = subprocess.PIPE if capture else None
    LOG.debug(
        "Running command %s with allowed return codes %s (capture=%s)",
        args,
        rcs,
        capture,
    )
    cmd = encode_command(args)
    started = time.monotonic()
    try:
        proc = subprocess.Popen(
            cmd, stdout=pipe, stderr=pipe, stdin=subprocess.DEVNULL, env=env
        )
    except OSError as e:
        placeholder = "-" if decode else b"-"
        raise ProcessExecutionError(
            cmd=args,
            reason=e,
            errno=e.errno,
            stdout=placeholder,
            stderr=placeholder,
        ) from e
    try:
        out, err = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired as e:
        proc.kill()
        out, err = proc.communicate()
        raise ProcessTimeoutError(
            cmd=args, timeout=timeout, stdout=out, stderr=err
        ) from e
    elapsed = time.monotonic() - started
    if elapsed > 0.1:
        LOG.debug("%s took %.3ss to run", args, elapsed)

    if decode:
        out, err = [
            d.decode("utf-8", decode) if isinstance(d, bytes) else d
            for d in (out, err)
        ]
    if proc.returncode not in rcs:
        raise ProcessExecutionError(
            stdout=out, stderr=err, exit_code=proc.returncode, cmd=args
        )
    return SubpResult(out, err)


def target_path(target=None, path=None):
    """Return path below the root directory target, '/' by default."""
    if target in (None, ""):
        target = "/"
    elif not isinstance(target, str):
        raise ValueError("Unexpected input for target: %s" % (target,))
    else:
        # abspath keeps a leading "//"
        target = os.path.abspath(target)
        if target.startswith("//"):
            target = target[1:]
    if not path:
        return target
    return os.path.join(target, path.lstrip("/"))


def is_exe(fpath) -> bool:
    return os.path.isfile(fpath) and os.access(fpath, os.X_OK)


def which(program, search=None, target=None) -> Optional[str]:
    """Return the path of program as seen from inside target, or None.

    Without search, $PATH is used; below a target only its absolute
    entries are.
    """
    target = target_path(target)
    if os.path.sep in program:
        return program if is_exe(target_path(target, program)) else None

    if search is None:
        search = [
            p.strip('"') for p in os.environ.get("PATH", "").split(os.pathsep)
        ]
        if target != "/":
            search = [p for p in search if p.startswith("/")]

    for directory in search:
        candidate = os.path.join(os.path.abspath(directory), program)
        if is_exe(target_path(target, candidate)):
            return candidate
    return None
