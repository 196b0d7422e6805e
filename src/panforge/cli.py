"""CLI entry point for panforge."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from loguru import logger

from . import __version__
from .config import PanforgeSettings
from .deps import KNOWN_TOOLS, CheckResult, check_tool, required_tools
from .errors import PanforgeError
from .executor import SubprocessExecutor
from .formats import get_supported_formats
from .runner import run
from .scaffold import KNOWN_FORMATS, run_init

log = logger.bind(stage="cli")

PANDOC_INSTALL_HINT = (
    "pandoc not found. Please install it from https://pandoc.org/installing.html"
)


class DefaultCommandGroup(click.Group):
    """Group that falls back to ``convert`` when no subcommand is named."""

    default_command = "convert"

    def resolve_command(self, ctx, args):
        if args and args[0] in self.commands:
            return super().resolve_command(ctx, args)
        return self.default_command, self.commands[self.default_command], args


def _split_targets(values: tuple[str, ...]) -> list[str]:
    """``-t html,pdf -t epub`` -> ``["html", "pdf", "epub"]``."""
    targets: list[str] = []
    for value in values:
        targets.extend(part.strip() for part in value.split(",") if part.strip())
    return targets


@click.group(
    cls=DefaultCommandGroup,
    context_settings={"ignore_unknown_options": True},
)
@click.version_option(__version__, prog_name="panforge")
def main() -> None:
    """A wrapper for pandoc with complex configurations.

    panforge builds every output listed in a Markdown document's YAML front
    matter (or given with --to), each with its own pandoc options, in parallel.

    \b
    Examples:
      panforge input.md
      panforge input.md -t pdf,docx --force
      panforge input.md -- --from markdown --to html5
      panforge input.md --dry-run
    """


@main.command(
    context_settings={"ignore_unknown_options": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("-t", "--to", "targets", multiple=True, help="Output format(s); repeat or comma-separate.")
@click.option("-a", "--all", "all_", is_flag=True, help="Convert to all formats in the YAML header.")
@click.option("-o", "--output", default="", help="Output filename (overrides the template).")
@click.option("-f", "--force", is_flag=True, help="Overwrite existing output file(s).")
@click.option("-n", "--dry-run", is_flag=True, help="Print the pandoc command(s) without executing them.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging and pandoc warnings.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress program messages.")
@click.option(
    "-l",
    "--log",
    "log_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append program calls to FILE.",
)
@click.option(
    "-c",
    "--concurrency",
    type=click.IntRange(min=0),
    default=0,
    help="Max concurrent pandoc processes (default: number of CPUs).",
)
@click.option(
    "-w",
    "--watch",
    is_flag=True,
    help="Rebuild on changes (implies --force for existing outputs).",
)
@click.pass_context
def convert(
    ctx: click.Context,
    args: tuple[str, ...],
    targets: tuple[str, ...],
    all_: bool,
    output: str,
    force: bool,
    dry_run: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    concurrency: int,
    watch: bool,
) -> None:
    """Convert FILE to every configured target. Arguments after FILE go to pandoc."""
    target_list = _split_targets(targets)
    if not args:
        if target_list or output:
            raise click.UsageError("no input file found")
        click.echo(ctx.get_help())
        return

    # Only pass flags that were set so PANFORGE_* env vars still apply
    config_kwargs: dict[str, object] = {
        key: value
        for key, value in {
            "targets": target_list,
            "output": output,
            "force": force,
            "dry_run": dry_run,
            "verbose": verbose,
            "quiet": quiet,
            "all": all_,
            "watch": watch,
            "concurrency": concurrency,
            "log_file": log_file,
        }.items()
        if value
    }
    settings = PanforgeSettings(**config_kwargs)  # type: ignore[arg-type]
    settings.setup_logging()

    if not settings.dry_run and not get_supported_formats(settings.pandoc_bin):
        raise click.ClickException(PANDOC_INSTALL_HINT)

    executor = SubprocessExecutor(dry_run=settings.dry_run, verbose=settings.verbose)
    try:
        run(
            list(args),
            settings,
            executor,
            stdin=sys.stdin,
        )
    except PanforgeError as exc:
        raise click.ClickException(str(exc)) from exc


@main.command()
@click.option("--config", "config_", is_flag=True, help="Generate a default .panforge.yaml (default).")
@click.option("-m", "--markdown", is_flag=True, help="Generate a sample input.md with front matter.")
@click.option(
    "-t",
    "--to",
    "formats",
    multiple=True,
    help=f"Output formats for the Markdown template ({', '.join(KNOWN_FORMATS)}).",
)
@click.option("-f", "--force", is_flag=True, help="Overwrite existing files.")
def init(config_: bool, markdown: bool, formats: tuple[str, ...], force: bool) -> None:
    """Generate a default configuration file or a scaffolded Markdown file."""
    try:
        run_init(markdown=markdown and not config_, formats=_split_targets(formats), force=force)
    except PanforgeError as exc:
        raise click.ClickException(str(exc)) from exc


def _format_check_row(res: CheckResult) -> tuple[str, str, str]:
    if not res.found:
        return res.name, "MISSING", res.error
    details = res.version or res.path
    if len(details) > 50:
        details = details[:47] + "..."
    return res.name, "FOUND", details


@main.command()
@click.argument(
    "file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def check(file: Path | None) -> None:
    """Check for installed dependencies.

    With FILE, only the tools required by that file's configuration are
    checked; otherwise every known tool is.
    """
    settings = PanforgeSettings()
    settings.setup_logging()

    if file is not None:
        tools = required_tools(file.resolve(), settings)
    else:
        tools = list(KNOWN_TOOLS)

    rows = [("Tool", "Status", "Version/Path"), ("----", "------", "------------")]
    rows += [_format_check_row(check_tool(tool)) for tool in dict.fromkeys(tools)]

    widths = [max(len(row[i]) for row in rows) for i in range(2)]
    for name, status, details in rows:
        click.echo(f"{name:<{widths[0]}}   {status:<{widths[1]}}   {details}")
