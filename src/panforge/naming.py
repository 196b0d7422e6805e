"""Output filename synthesis from the ``filename-template`` setting."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from loguru import logger

from .formats import ext_for_format
from .layers import ConfigLayers
from .models import OptionValue, bag_bool, bag_str
from .sanitize import format_date, format_time, sanitize_filename, slugify

log = logger.bind(stage="naming")

DEFAULT_TEMPLATE = "{title}_{date}.{ext}"


def first_heading(input_file: Path) -> str:
    """Text of the first ``# `` heading in the document, or an empty string."""
    try:
        content = input_file.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""
    for line in content.splitlines():
        if line.startswith("# "):
            return line[2:].strip()
    return ""


def document_title(input_file: Path, layers: ConfigLayers) -> str:
    """Configured title, else first heading, else the input's base name."""
    title = layers.title
    if not title:
        title = first_heading(input_file)
    if not title:
        title = input_file.stem
    return title


def _split_ext(name: str) -> tuple[str, str]:
    dot = name.rfind(".")
    if dot < 0:
        return name, ""
    return name[:dot], name[dot:]


def generate_output_filename(
    input_file: Path,
    layers: ConfigLayers,
    options: Mapping[str, OptionValue],
    fmt: str,
    *,
    now: datetime | None = None,
    platform: str | None = None,
) -> str:
    """Render the output filename for one target.

    An ``output`` string in the target's options is returned verbatim.
    Otherwise the template is rendered, sanitized for ``platform``, and
    optionally slugified (target ``slugify-filename`` beats the global one).
    """
    override = bag_str(options, "output")
    if override:
        return override

    now = now or datetime.now()
    title = document_title(input_file, layers)
    author = layers.author
    template = layers.filename_template or DEFAULT_TEMPLATE

    substitutions = (
        ("{date}", format_date(now)),
        ("{time}", format_time(now)),
        ("{title}", title),
        ("{author}", author),
        ("{title-slug}", slugify(title)),
        ("{author-slug}", slugify(author)),
        ("{ext}", ext_for_format(fmt)),
    )
    result = template
    for token, value in substitutions:
        result = result.replace(token, value)

    result = sanitize_filename(result, platform)

    should_slugify = bag_bool(options, "slugify-filename")
    if should_slugify is None:
        should_slugify = bool(layers.slugify_filename)

    if should_slugify:
        base, ext = _split_ext(result)
        result = slugify(base) + ext

    log.debug(f"Rendered '{template}' -> '{result}'")
    return result
