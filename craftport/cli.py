# cli.py - Command line interface for craftport
"""
craftport CLI - Migrate Craft markdown exports into a Hugo content tree

COMMANDS:
    craftport migrate [--src DIR] [--dist DIR] [--cache DIR] [--workers N] [-v]
                                              Convert every exported document
    craftport check [--dist DIR]              Validate a migrated content tree
    craftport init [--force]                  Write a craftport.yaml template
    craftport version                         Show version information

EXAMPLES:
    # Migrate ./craft into ./content using ./.cache
    craftport migrate

    # Custom folders, downloads one at a time, debug output
    craftport migrate --src ~/Exports/Blog --dist site/content --workers 1 -v

    # Look for missing assets after a migration
    craftport check
"""

import sys
from pathlib import Path
from typing import Optional

import click

from craftport import __version__
from craftport.config_utils import (
    CONFIG_FILE_NAME,
    CraftportConfig,
    create_config_template,
    get_config,
)
from craftport.errors import CraftportError
from craftport.icons import ERROR, SUCCESS, WARNING
from craftport.log_utils import setup_logging


class CraftportContext:
    """Shared context for CLI commands"""

    def __init__(self, work_dir: Optional[Path] = None):
        self.work_dir = work_dir or Path.cwd()

    def load_config(self, **overrides) -> CraftportConfig:
        try:
            return get_config(self.work_dir, overrides)
        except CraftportError as e:
            click.echo(str(e), err=True)
            sys.exit(1)


@click.group()
@click.pass_context
def cli(ctx):
    """
    craftport - Craft to Hugo content migration

    Turns markdown documents exported from Craft into Hugo page bundles
    with local, de-duplicated assets.
    """
    ctx.obj = CraftportContext()


# ============================================================================
# Migration
# ============================================================================

@cli.command()
@click.option('--src', type=click.Path(path_type=Path), help='Folder with exported .md files')
@click.option('--dist', type=click.Path(path_type=Path), help='Hugo content folder to write into')
@click.option('--cache', type=click.Path(path_type=Path), help='Download and conversion cache folder')
@click.option('--workers', type=click.IntRange(min=1), help='Parallel asset downloads per document')
@click.option('--verbose', '-v', count=True, help='Show debug output')
@click.pass_obj
def migrate(
    ctx: CraftportContext,
    src: Optional[Path],
    dist: Optional[Path],
    cache: Optional[Path],
    workers: Optional[int],
    verbose: int,
):
    """
    Migrate exported Craft documents into Hugo page bundles

    Every *.md file in the source folder becomes <dist>/<slug>/index.md with
    its images, PDFs and videos copied to <dist>/<slug>/assets/. Assets are
    downloaded once and kept in the cache for later runs.

    Examples:
        craftport migrate
        craftport migrate --src export --dist content -v
    """
    # Imported here so `craftport version` stays fast
    from craftport.migrate import run_migration

    config = ctx.load_config(src=src, dist=dist, cache=cache, workers=workers)
    setup_logging(verbose or (1 if config.debug else 0))

    try:
        report = run_migration(config)
    except CraftportError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    if report.failed:
        click.echo(f"\n{WARNING} Documents that failed:", err=True)
        for path, message in report.failed:
            click.echo(f"  {ERROR} {path.name}: {message}", err=True)
        sys.exit(1)

    click.echo(f"\n{SUCCESS} {report.summary()}")


@cli.command()
@click.option('--dist', type=click.Path(path_type=Path), help='Content folder to check')
@click.pass_obj
def check(ctx: CraftportContext, dist: Optional[Path]):
    """
    Validate a migrated content tree

    Checks for:
    - Unparseable frontmatter or a missing draft flag
    - Cover images missing from the page bundle
    - assets/ links and shortcode paths that point nowhere

    Examples:
        craftport check
        craftport check --dist site/content
    """
    from craftport.validate import validate_content_tree

    config = ctx.load_config(dist=dist)
    click.echo(f"[*] Validating content: {config.dist_path}\n")

    result = validate_content_tree(config.dist_path)
    for issue in result.issues:
        click.echo(f"{issue.path}")
        click.echo(str(issue))

    click.echo(f"\n{result.summary()}")

    # Exit with error code if invalid
    if not result.is_valid:
        sys.exit(1)


@cli.command()
@click.option('--force', is_flag=True, help='Overwrite an existing craftport.yaml')
@click.pass_obj
def init(ctx: CraftportContext, force: bool):
    """
    Write a craftport.yaml template into the current folder

    Examples:
        craftport init
        craftport init --force
    """
    yaml_path = ctx.work_dir / CONFIG_FILE_NAME
    if yaml_path.exists() and not force:
        click.echo(f"[!] {CONFIG_FILE_NAME} already exists (use --force to overwrite)")
        sys.exit(1)

    yaml_path.write_text(create_config_template(), encoding="utf-8")
    click.echo(f"[v] Created {yaml_path}")
    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Edit {CONFIG_FILE_NAME} (src, dist, cache)")
    click.echo("  2. Run: craftport migrate")
    click.echo("  3. Run: craftport check")


@cli.command()
def version():
    """Show craftport version"""
    click.echo(f"craftport v{__version__}")
    click.echo("Craft markdown to Hugo content migration")


# ============================================================================
# Entry Point
# ============================================================================

if __name__ == '__main__':
    cli()
