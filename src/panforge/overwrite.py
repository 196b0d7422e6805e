"""Overwrite policy for existing output files."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import click

from .layers import ConfigLayers
from .models import OptionValue, bag_bool


def is_overwrite_allowed(layers: ConfigLayers, options: Mapping[str, OptionValue]) -> bool:
    """True if the target or the global config sets ``overwrite: true``.

    Most permissive wins: a target-level ``false`` does not veto a global ``true``.
    """
    if bag_bool(options, "overwrite") is True:
        return True
    return layers.first("overwrite") is True


def ask_for_confirmation(path: Path) -> bool:
    """Prompt on stderr; anything but y/yes (or EOF) declines."""
    try:
        return click.confirm(
            f"File '{path}' already exists. Overwrite?",
            default=False,
            err=True,
        )
    except click.Abort:
        return False
