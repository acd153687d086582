"""Command line interface for encdetect."""

from __future__ import annotations

import difflib
import shlex
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from encdetect.config import (
    ConfigError,
    ConfigManager,
    EncDetectConfig,
    flatten_for_env,
    resolve_with_precedence,
)
from encdetect.config.resolver import ENV_PREFIX
from encdetect.detection import DetectionPipeline, DetectionReport, compute_entropy
from encdetect.errors import EncryptionDetectionError, IoFailure, StartupFailure
from encdetect.ingestion import DirectoryScanner, KnownHashSet, TypeDetector
from encdetect.log_setup import configure_logging
from encdetect.reporting import ConsoleNotifier, FindingStore, StoreError

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings."""
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _emit_report(report: DetectionReport, root: Path, *, quiet: bool, summary_only: bool) -> None:
    """Print failures and the summary line for a finished scan."""
    if report.failures:
        _emit_message(
            "[red]Errors encountered:[/red]", mode="error", quiet=quiet, summary_only=summary_only
        )
        for entry in report.failures:
            _emit_message(
                f"  - {entry.descriptor.display_path}: {entry.outcome.message}",
                mode="error",
                quiet=quiet,
                summary_only=summary_only,
            )
    if report.cancelled:
        _emit_message(
            "[yellow]Scan cancelled before all files were processed.[/yellow]",
            mode="warning",
            quiet=quiet,
            summary_only=summary_only,
        )
    _emit_message(
        _format_summary_line("Scan", root, report.counts),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="encdetect")
def cli() -> None:
    """encdetect flags files whose content is likely encrypted."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Include all subdirectories.")
@click.option(
    "--known-hashes",
    "known_hashes",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Hash list of known files to exclude from analysis.",
)
@click.option("--min-entropy", type=float, help="Entropy threshold in bits per byte.")
@click.option("--min-size", type=int, help="Minimum file size in bytes.")
@click.option(
    "--size-multiple/--no-size-multiple",
    default=None,
    help="Require file sizes to be a multiple of 512 bytes.",
)
@click.option(
    "--slack/--no-slack",
    "slack_allowed",
    default=None,
    help="Allow slack-space files to be analyzed.",
)
@click.option("--workers", type=int, help="Number of files classified concurrently.")
@click.option("--no-store", is_flag=True, help="Do not record findings under PATH/.encdetect.")
@click.option("--fresh", is_flag=True, help="Discard findings recorded by earlier scans first.")
@click.option("--log-level", type=click.Choice(_LOG_LEVELS, case_sensitive=False))
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the scan.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    path: str,
    recursive: bool,
    known_hashes: str | None,
    min_entropy: float | None,
    min_size: int | None,
    size_multiple: bool | None,
    slack_allowed: bool | None,
    workers: int | None,
    no_store: bool,
    fresh: bool,
    log_level: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Scan PATH and flag files that are likely encrypted.

    Args:
        ctx: Click context used for parameter source inspection.
        path: File or directory to scan.
        recursive: Whether to include subdirectories.
        known_hashes: Optional known-file hash list.
        min_entropy: Override for ``detection.minimum_entropy``.
        min_size: Override for ``detection.minimum_file_size``.
        size_multiple: Override for ``detection.file_size_multiple_enforced``.
        slack_allowed: Override for ``detection.slack_files_allowed``.
        workers: Override for ``processing.workers``.
        no_store: Skip persisting findings.
        fresh: Clear the finding store before scanning.
        log_level: Override for ``logging.level``.
        json_output: If True, emit a JSON report.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.

    Raises:
        click.ClickException: If configuration loading fails or a collaborator
            cannot be started.
    """
    overrides: dict[str, Any] = {}
    for key, value in (
        ("detection.minimum_entropy", min_entropy),
        ("detection.minimum_file_size", min_size),
        ("detection.file_size_multiple_enforced", size_multiple),
        ("detection.slack_files_allowed", slack_allowed),
        ("processing.workers", workers),
        ("processing.known_hashes_path", known_hashes),
    ):
        if value is not None:
            overrides[key] = value
    if recursive:
        overrides["processing.recurse_directories"] = True

    try:
        manager = ConfigManager()
        manager.ensure_exists()
        config = manager.load(cli_overrides=overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        quiet_enabled = False
        summary_only = False
    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )

    logger = configure_logging(config.logging, level_override=log_level)
    processing = config.processing
    root = Path(path).expanduser().resolve()

    try:
        hash_set = None
        if processing.known_hashes_path:
            hash_set = KnownHashSet.load(Path(processing.known_hashes_path))
        detector = TypeDetector()
    except StartupFailure as exc:
        _handle_cli_error(str(exc), code="startup_failure", json_output=json_output, original=exc)
        return

    scanner = DirectoryScanner(
        recursive=processing.recurse_directories,
        include_hidden=processing.process_hidden_files,
        follow_symlinks=processing.follow_symlinks,
        known_hashes=hash_set,
    )
    store = None
    if not no_store:
        store = FindingStore.for_root(root if root.is_dir() else root.parent)
        if fresh:
            try:
                store.clear()
            except StoreError as exc:
                _handle_cli_error(
                    str(exc), code="store_error", json_output=json_output, original=exc
                )
                return
    notifiers = []
    if not (json_output or quiet_enabled or summary_only):
        notifiers.append(ConsoleNotifier(console))

    pipeline = DetectionPipeline(
        config.detection,
        detector,
        store=store,
        notifiers=notifiers,
        workers=processing.workers,
        chunk_size=processing.chunk_size_kb * 1024,
        logger=logger,
    )
    report = DetectionReport()
    try:
        pipeline.run(scanner.scan(root), report=report)
    except KeyboardInterrupt:
        pipeline.cancel()
        report.cancelled = True

    if json_output:
        payload = {"root": str(root), **report.json_payload}
        if store is not None:
            payload["store"] = str(store.path)
        console.print_json(data=payload)
        return

    _emit_report(report, root, quiet=quiet_enabled, summary_only=summary_only)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
def entropy(path: str, json_output: bool) -> None:
    """Print the entropy of the file at PATH without applying qualification rules."""
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    file_path = Path(path).expanduser().resolve()
    try:
        size = file_path.stat().st_size
        stream = file_path.open("rb")
    except OSError as exc:
        _handle_cli_error(
            str(IoFailure(f"Unable to open '{file_path}': {exc}")),
            code="io_failure",
            json_output=json_output,
            original=exc,
        )
        return

    try:
        value = compute_entropy(
            stream, size, chunk_size=config.processing.chunk_size_kb * 1024
        )
    except EncryptionDetectionError as exc:
        _handle_cli_error(str(exc), code="entropy_error", json_output=json_output, original=exc)
        return

    threshold = config.detection.minimum_entropy
    if json_output:
        console.print_json(
            data={
                "path": str(file_path),
                "entropy": value,
                "threshold": threshold,
                "meets_threshold": value >= threshold,
            }
        )
        return

    colour = "red" if value >= threshold else "green"
    console.print(f"File: {file_path}")
    console.print(f"Entropy: [{colour}]{value:.6f}[/{colour}] (threshold {threshold})")


@cli.group()
def config() -> None:
    """Manage encdetect configuration files and overrides."""


def _validate_file_data(file_data: dict[str, Any]) -> EncDetectConfig:
    """Resolve file overrides against the defaults, surfacing errors to click.

    Raises:
        click.ClickException: If the data does not describe a valid configuration.
    """
    try:
        return resolve_with_precedence(defaults=EncDetectConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


_CONFIG_SECTIONS = sorted(EncDetectConfig.model_fields)


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.option("--section", type=click.Choice(_CONFIG_SECTIONS), help="Only show one section.")
@click.option(
    "--as-env",
    "as_env",
    is_flag=True,
    help=f"Render settings as {ENV_PREFIX}SECTION__KEY environment variables.",
)
def config_view(no_env: bool, section: str | None, as_env: bool) -> None:
    """Show the effective settings and the file they were read from."""
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(f"[dim]# {escape(str(manager.config_path))}[/dim]")
    if as_env:
        prefix = f"{ENV_PREFIX}{section.upper()}__" if section else ENV_PREFIX
        lines = [
            f"{name}={shlex.quote(value)}"
            for name, value in flatten_for_env(loaded).items()
            if name.startswith(prefix)
        ]
        console.print(Syntax("\n".join(lines), "bash", word_wrap=True))
        return

    data = loaded.model_dump(mode="json")
    if section:
        data = {section: data[section]}
    console.print(Syntax(yaml.safe_dump(data, sort_keys=False), "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'detection.minimum_entropy'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    file_data = manager.load_file_overrides()
    try:
        _assign_nested(file_data, segments, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _validate_file_data(file_data)

    manager.save(file_data)
    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    # The timestamp line always changes; only report real edits.
    changed = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---"))
        and "Last updated" not in line
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the configuration file in $EDITOR and save it if it still validates.

    Raises:
        click.ClickException: If the edited document is not a valid configuration.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    try:
        current: EncDetectConfig | None = resolve_with_precedence(
            defaults=EncDetectConfig(), file_overrides=manager.load_file_overrides()
        )
    except ConfigError:
        # An invalid file stays editable.
        current = None

    edited = click.edit(manager.read_text(), extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    try:
        document = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(document, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    updated = _validate_file_data(document)
    changed = [
        name
        for name in _CONFIG_SECTIONS
        if current is None or getattr(current, name) != getattr(updated, name)
    ]
    if not changed:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    manager.save(document)
    console.print(f"[green]Configuration updated ({', '.join(changed)}).[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
