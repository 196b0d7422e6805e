"""``panforge init``: write a starter config or Markdown document."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import click
import yaml

from .errors import PanforgeError

CONFIG_FILENAME = ".panforge.yaml"
SCAFFOLD_FILENAME = "input.md"

KNOWN_FORMATS: tuple[str, ...] = ("html", "pdf", "epub", "docx")
DEFAULT_SCAFFOLD_FORMATS: tuple[str, ...] = ("html", "pdf")

CONFIG_TEMPLATE = """\
# Default Configuration for panforge
#
# Copy to ~/.panforge/default.yaml to apply it to every document.
# Keys set in a document's front matter always take precedence.

# Output filename template. Tokens:
#   {title} {title-slug} {author} {author-slug} {date} {time} {ext}
filename-template: "{title}_{date}.{ext}"

# Lower-case and dash-separate the generated filename.
slugify-filename: false

# Replace existing outputs without asking.
overwrite: false

# Per-target pandoc options.
output:
  html:
    standalone: true
    toc: true
  pdf:
    pdf-engine: xelatex
    variable:
      - geometry:margin=1in
  epub:
    to: epub3
  docx: {}
"""

_SCAFFOLD_BODY = """
# Untitled Document

Write your content here.

## Section

- One
- Two
"""

_TARGET_OPTIONS: dict[str, dict[str, object]] = {
    "html": {"standalone": True, "toc": True},
    "pdf": {"pdf-engine": "xelatex"},
    "epub": {"to": "epub3"},
    "docx": {},
}


def render_scaffold(formats: Sequence[str]) -> str:
    """Markdown document whose front matter lists ``formats`` as targets."""
    formats = list(formats) or list(DEFAULT_SCAFFOLD_FORMATS)
    front_matter = {
        "title": "Untitled Document",
        "author": "",
        "outputs": formats,
        "output": {fmt: dict(_TARGET_OPTIONS.get(fmt, {})) for fmt in formats},
    }
    header = yaml.safe_dump(
        front_matter, sort_keys=False, default_flow_style=False, allow_unicode=True
    )
    return f"---\n{header}---\n{_SCAFFOLD_BODY}"


def create_file(path: Path, content: str, force: bool) -> Path:
    """Write ``content`` to ``path``; refuses to replace a file without ``force``."""
    if path.exists() and not force:
        raise PanforgeError(f"file '{path.name}' already exists (use --force to overwrite)")
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise PanforgeError(f"failed to write {path.name}: {exc}") from exc

    click.echo(f"Created {path.name} at {path.resolve()}")
    return path


def run_init(
    *,
    markdown: bool = False,
    formats: Sequence[str] = (),
    force: bool = False,
    directory: Path | None = None,
) -> Path:
    """Create ``input.md`` (``markdown``) or ``.panforge.yaml`` in ``directory``."""
    directory = directory or Path.cwd()
    if markdown:
        return create_file(directory / SCAFFOLD_FILENAME, render_scaffold(formats), force)
    return create_file(directory / CONFIG_FILENAME, CONFIG_TEMPLATE, force)
