"""CLI adapter for ``lib_layered_properties`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators check how a property resolves from the current environment and
validate settings documents without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_get` – resolves one property through the environment chain.
* :func:`cli_check_settings` – validates and normalises a settings document.
* :func:`cli_fail` – deterministic failure for traceback handling.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It drives the composition root
(:class:`~lib_layered_properties.core.ConfigurationManager`) and never reaches
into sources directly. Remote configuration needs host-supplied clients, so the
CLI only applies the cache controls of a settings file.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import replace
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .application.resolver import DEFAULT_DELIMITER
from .core import ConfigurationManager, read_property_settings
from .domain.settings import RemoteConfigSettings
from .testing import i_should_fail

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

VALUE_KINDS: Final[tuple[str, ...]] = ("raw", "object", "timestamp")


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when metadata is unavailable."""

    try:
        return metadata.version("lib_layered_properties")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Layered property resolution with caching and remote sources",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_layered_properties",
    message="lib_layered_properties version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_layered_properties")
    except metadata.PackageNotFoundError:
        click.echo("lib_layered_properties (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_layered_properties')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("name")
@click.option("--namespace", default=None, help="Namespace prepended to NAME")
@click.option("--delimiter", default=DEFAULT_DELIMITER, show_default=True, help="Separator after the namespace")
@click.option(
    "--as",
    "kind",
    type=click.Choice(VALUE_KINDS, case_sensitive=False),
    default="raw",
    show_default=True,
    help="Decode the value as raw text, a JSON object, or an ISO-8601 timestamp",
)
@click.option("--default", "default", default=None, help="Value printed when the property is absent")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="Settings document whose cache controls are applied",
)
def cli_get(
    name: str,
    namespace: Optional[str],
    delimiter: str,
    kind: str,
    default: Optional[str],
    settings_path: Optional[Path],
) -> None:
    """Resolve NAME from the environment and print it as JSON.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["get", "API_URL"], env={"API_URL": "https://api.example"})
    >>> result.output.strip()
    '"https://api.example"'
    """

    manager = ConfigurationManager()
    if settings_path is not None:
        settings = read_property_settings(settings_path)
        manager.start(replace(settings, remote_config=RemoteConfigSettings()))
    value = asyncio.run(_lookup(manager, name, namespace, delimiter, kind.lower(), default))
    click.echo(json.dumps(value, default=_json_default))


@cli.command("check-settings", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument(
    "path",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_check_settings(path: Path, indent: Optional[int]) -> None:
    """Validate a settings document and print it in canonical form."""

    settings = read_property_settings(path)
    click.echo(json.dumps(settings.to_dict(), indent=indent))


@cli.command("fail", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_fail() -> None:
    """Trigger a deterministic error for testing traceback handling."""

    i_should_fail()


async def _lookup(
    manager: ConfigurationManager,
    name: str,
    namespace: Optional[str],
    delimiter: str,
    kind: str,
    default: Optional[str],
) -> Any:
    resolver: Any = manager.properties if namespace is None else manager.namespace(namespace, delimiter)
    if kind == "object":
        return await resolver.get_object(name, default)
    if kind == "timestamp":
        if default is None:
            return await resolver.get_timestamp(name)
        return await resolver.get_timestamp(name, datetime.fromisoformat(default))
    return await resolver.get_property(name, default)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_layered_properties",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
