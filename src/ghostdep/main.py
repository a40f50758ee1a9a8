"""ghostdep CLI - find packages your code imports but your package.json never declares."""
import fnmatch
import os
from contextlib import nullcontext
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ghostdep.analyzer.detector import GhostDependencyDetector, emit_report
from ghostdep.analyzer.manifest import ManifestError
from ghostdep.analyzer.source_analyzer import SUPPORTED_EXTENSIONS
from ghostdep.config import CheckConfig, LogLevel, __version__, load_config
from ghostdep.utils.logger import setup_logging

app = typer.Typer(
    name="ghostdep",
    help="Find ghost dependencies: packages imported in source but missing from package.json",
    add_completion=False
)
console = Console()

# Never scanned for source files
EXCLUDED_DIRS = {
    'node_modules', 'bower_components', 'jspm_packages',
    '.git', '.hg', '.svn', 'dist', 'build', 'lib', 'coverage',
    '.next', '.nuxt', '.output', '.cache', '.turbo',
}

EXIT_GHOSTS_FOUND = 1
EXIT_ERROR = 2


# Any of these set means output is captured, so the live progress bar is skipped
CI_ENV_VARS = ('CI', 'GITHUB_ACTIONS', 'GITLAB_CI', 'CIRCLECI', 'JENKINS_HOME', 'BUILDKITE')


def is_ci_environment() -> bool:
    return any(os.getenv(name) for name in CI_ENV_VARS)


def find_source_files(project_path: Path, ignore: Optional[List[str]] = None) -> List[Path]:
    """Glob analyzable source files under project_path.

    Declaration files (*.d.ts) carry no runtime imports and are skipped.

    Args:
        project_path: Absolute project root
        ignore: Extra glob patterns matched against paths relative to the root

    Returns:
        Sorted absolute file paths
    """
    ignore = ignore or []
    files = []

    for extension in sorted(SUPPORTED_EXTENSIONS):
        for file_path in project_path.rglob(f'*{extension}'):
            relative = file_path.relative_to(project_path)
            if any(part in EXCLUDED_DIRS for part in relative.parts[:-1]):
                continue
            if file_path.name.endswith('.d.ts') or not file_path.is_file():
                continue
            if any(fnmatch.fnmatch(relative.as_posix(), pattern) for pattern in ignore):
                continue
            files.append(file_path)

    return sorted(set(files))


def _print_report(report: Dict[str, List[str]], project_path: Path):
    if not report:
        console.print("[bold green]This project has no ghost dependencies.[/bold green]")
        return

    table = Table(title="Possible Ghost Dependencies")
    table.add_column("Specifier", style="cyan")
    table.add_column("Files", justify="right", style="magenta")
    table.add_column("First usage", style="dim", no_wrap=False)

    for specifier, sites in report.items():
        try:
            first = Path(sites[0]).relative_to(project_path)
        except ValueError:
            first = sites[0]
        table.add_row(escape(specifier), str(len(sites)), escape(str(first)))

    console.print(table)


@app.command()
def check(
    project_path: str = typer.Argument(".", help="Project root to scan for source files"),
    manifest: Optional[List[str]] = typer.Option(None, "--manifest", "-m", help="package.json declaring allowed packages (repeatable, default: <project>/package.json)"),
    monorepo: bool = typer.Option(False, "--monorepo", help="Resolve each file against every package.json above it"),
    exclude_alias: Optional[List[str]] = typer.Option(None, "--exclude-alias", "-x", help="Path alias root to ignore, e.g. '@' or '~' (repeatable)"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", "-i", help="Glob of files to skip, relative to the project (repeatable)"),
    encoding: Optional[str] = typer.Option(None, "--encoding", help="Source file encoding (default: utf-8)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="debug, info, warning or error"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Maximum files analyzed concurrently"),
    no_export: bool = typer.Option(False, "--no-export", help="Do not write ghost-dependencies.json"),
):
    """Report packages referenced in source files but not declared in package.json."""

    root = Path(project_path).resolve()

    if not root.exists():
        console.print(f"[bold red]Error:[/bold red] Project path does not exist: {escape(str(root))}")
        raise typer.Exit(EXIT_ERROR)

    try:
        config: CheckConfig = load_config(
            exclude_alias=exclude_alias or None,
            encoding=encoding,
            log_level=LogLevel.parse(log_level) if log_level else None,
            max_workers=workers,
            export=False if no_export else None,
        )
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(EXIT_ERROR)

    setup_logging(config.log_level)

    files = find_source_files(root, ignore)
    if not files:
        console.print("[bold yellow]No source files found.[/bold yellow]")
        return

    mode = "monorepo" if monorepo else "flat"
    console.print(f"[bold blue]Checking {len(files)} file(s) in {escape(str(root))}[/bold blue] ({mode} mode)\n")

    show_progress = not is_ci_environment()
    progress_ctx = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True
    ) if show_progress else nullcontext()

    try:
        with progress_ctx as progress:
            callback = None
            if show_progress:
                task = progress.add_task(config.name, total=len(files))
                callback = lambda done, total: progress.update(task, completed=done, total=total)  # noqa: E731

            detector = GhostDependencyDetector(config, progress=callback)
            if monorepo:
                report = detector.check_monorepo(files, root)
            else:
                manifests = [Path(m).resolve() for m in manifest] if manifest else [root / 'package.json']
                report = detector.check(files, manifests)
    except ManifestError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(EXIT_ERROR)

    _print_report(report, root)

    output_path = emit_report(report, config)
    if output_path is not None:
        console.print(f"\n[dim]Report written to {escape(str(output_path))}[/dim]")

    if report:
        raise typer.Exit(EXIT_GHOSTS_FOUND)


@app.command()
def version():
    """Print the ghostdep version."""
    console.print(f"ghostdep {__version__}")


if __name__ == "__main__":
    app()
