"""Jinja2 environment for package text files."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Shared template environment (plain text, no autoescaping)."""
    return Environment(  # nosec B701
        loader=PackageLoader("ffbuild.packaging", "templates"),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_template(name: str, /, **context: Any) -> str:
    """Render a bundled template by file name (e.g., "postinst.j2")."""
    return get_environment().get_template(name).render(**context)
