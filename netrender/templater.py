# This file is part of netrender. See LICENSE file for license information.
"""Render the jinja templates shipped beside the renderers.

Templates start with a '## template: jinja' line which is dropped before
rendering. Undefined variables are errors.
"""

import logging
import re
from typing import Optional, Tuple

from jinja2 import StrictUndefined, Template

LOG = logging.getLogger(__name__)
TYPE_MATCHER = re.compile(r"##\s*template:(.*)", re.I)


def jinja_render(content: str, params: dict) -> str:
    return Template(
        content,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    ).render(**params)


def split_header(text: str) -> Tuple[str, str]:
    """Return the template type named on the first line and the body."""
    ident, _sep, body = text.partition("\n")
    type_match = TYPE_MATCHER.match(ident)
    if not type_match:
        raise ValueError("Template is missing a '## template:' header")
    template_type = type_match.group(1).lower().strip()
    if template_type != "jinja":
        raise ValueError(
            "Unknown template rendering type '%s' requested" % template_type
        )
    return template_type, body


def render_string(content: str, params: Optional[dict] = None) -> str:
    _template_type, body = split_header(content)
    return jinja_render(body, params or {})
