# This file is part of netrender. See LICENSE file for license information.
"""Structural validation of raw interface descriptions using jsonschema."""

import functools
import json
import logging
import os
import re
from typing import Any, List, NamedTuple

from jsonschema import Draft4Validator

from netrender.util import load_text_file

LOG = logging.getLogger(__name__)

SCHEMA_FILE = "schema-interface-config-v1.json"

_QUOTED = re.compile(r"'([^']*)'")


class SchemaProblem(NamedTuple):
    path: str
    message: str

    def format(self) -> str:
        return f"{self.path}: {self.message}"


def get_schema_dir() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas")


@functools.lru_cache()
def get_schema() -> dict:
    """Return the jsonschema describing one raw interface description."""
    schema_file = os.path.join(get_schema_dir(), SCHEMA_FILE)
    return json.loads(load_text_file(schema_file))


def _problem_paths(schema_error) -> List[str]:
    path = ".".join([str(p) for p in schema_error.path])
    if path:
        return [path]
    if schema_error.validator in ("required", "additionalProperties"):
        # the property name only appears in the message for these
        names = _QUOTED.findall(schema_error.message)
        if schema_error.validator == "required":
            names = names[:1]
        if names:
            return names
    return ["<spec>"]


def validate_interface_schema(spec: Any) -> List[SchemaProblem]:
    """Validate spec against the interface schema.

    @returns: every SchemaProblem found, sorted by path. An empty list
        means spec is structurally valid.
    """
    validator = Draft4Validator(get_schema())
    problems = []
    for schema_error in sorted(
        validator.iter_errors(spec), key=lambda e: [str(p) for p in e.path]
    ):
        for path in _problem_paths(schema_error):
            problems.append(SchemaProblem(path, schema_error.message))
    if problems:
        LOG.debug(
            "Interface spec failed schema validation: %s",
            ", ".join(p.format() for p in problems),
        )
    return problems
