"""Embed the browser-side link script into a generated SVG.

This is the alternative to rewriting the labels in :mod:`linker.inject`: the
document is left as generated and a script block, run by the browser when the
diagram is opened, adds the links instead.
"""
from __future__ import annotations

import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from linker.config import PLACEHOLDER, LinkTemplates
from linker.inject import DiagramError

BEGIN_MARKER = "<!-- BEGIN MANUAL JAVASCRIPT -->"
END_MARKER = "<!-- END MANUAL JAVASCRIPT -->"

_TEMPLATES_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)

# Last closing root tag, optionally prefixed (</svg:svg>)
_CLOSING_ROOT_RE = re.compile(r"</(?:[\w.\-]+:)?svg\s*>", re.IGNORECASE)
_EXISTING_BLOCK_RE = re.compile(
    r"[ \t]*" + re.escape(BEGIN_MARKER) + r".*?" + re.escape(END_MARKER) + r"[ \t]*\r?\n?",
    re.DOTALL,
)


def render_script(templates: LinkTemplates | None = None) -> str:
    templates = templates or LinkTemplates()
    return _env.get_template("link_script.js.j2").render(placeholder=PLACEHOLDER, **templates.as_dict())


def strip_script(svg_text: str) -> str:
    """Remove a previously embedded script block."""
    return _EXISTING_BLOCK_RE.sub("", svg_text)


def embed_script(svg_text: str, templates: LinkTemplates | None = None) -> str:
    text = strip_script(svg_text)
    closing = None
    for closing in _CLOSING_ROOT_RE.finditer(text):
        pass
    if closing is None:
        raise DiagramError("no closing </svg> tag to embed the script before")
    block = render_script(templates)
    return text[: closing.start()] + block + text[closing.start():]
