"""Faultline CLI - Main Entry Point.

The `faultline` command runs scripts under an installed fault-handling
core and inspects configuration.

Commands:
    run      - Run a Python script with fault handling installed
    validate - Load and validate configuration
    codes    - Show the tier every fault code classifies to
"""

import logging
import runpy
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click

from . import __version__, __cli_name__
from .utils.colors import (
    success, error, info,
    banner, section, kv, badge, table,
    _CHECK, _CROSS,
)
from ..config import ConfigLoader, FaultlineConfig
from ..debug.pages import ConsolePresenter, HTMLPresenter
from ..faults.classification import ClassificationPolicy
from ..faults.codes import (
    CORE_FATAL,
    DEFAULT_BACKGROUND_MASK,
    DEFAULT_IGNORE_MASK,
    SINGLE_CODES,
    describe_mask,
    parse_mask,
)
from ..faults.errors import FaultlineError
from ..runtime import ErrorHandlingCore


logger = logging.getLogger("faultline.cli")


# ═══════════════════════════════════════════════════════════════════════════
# Custom Click help formatter
# ═══════════════════════════════════════════════════════════════════════════


class FaultlineGroup(click.Group):
    """Click group subclass with branded help output."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        if ctx.parent is None:
            banner("Faultline", subtitle=f"v{__version__}  {_CHECK}  fault classification and shutdown")
            click.echo()

        super().format_help(ctx, formatter)

    def format_commands(
        self, ctx: click.Context, formatter: click.HelpFormatter
    ) -> None:
        """Format command listing with aligned columns."""
        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.get_command(ctx, subcommand)
            if cmd is None or cmd.hidden:
                continue
            commands.append((subcommand, cmd.get_short_help_str(limit=48)))

        if commands:
            with formatter.section(click.style("Commands", fg="cyan", bold=True)):
                max_len = max(len(c[0]) for c in commands) + 2
                for name, help_text in commands:
                    styled_name = click.style(name.ljust(max_len), fg="green")
                    formatter.write(f"  {styled_name} {help_text}\n")


@click.group(cls=FaultlineGroup)
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Minimal output')
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool):
    """Runtime fault classification with at-most-once shutdown.

    \b
    Quick start:
      faultline validate --config faultline.yaml
      faultline codes --config faultline.yaml
      faultline run --mode silent --log errors.txt app.py
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# ============================================================================
# Helpers
# ============================================================================

def _load(
    config: tuple,
    env_file: Optional[str],
    overrides: Dict[str, Any],
) -> ConfigLoader:
    return ConfigLoader.load(
        paths=list(config),
        env_file=env_file,
        overrides={k: v for k, v in overrides.items() if v is not None},
    )


def _fail(message: str) -> None:
    error(f"  {_CROSS} {message}")
    sys.exit(1)


# ============================================================================
# Commands
# ============================================================================

@cli.command(
    'run',
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument('script', type=click.Path(exists=True, dir_okay=False))
@click.argument('args', nargs=-1, type=click.UNPROCESSED)
@click.option('--config', '-c', multiple=True, help='Config file (YAML or JSON); repeatable')
@click.option('--mode', '-m', type=str, help='Termination mode (development, production, silent, custom)')
@click.option('--log', 'log_file', type=click.Path(dir_okay=False), help='Fault log file for every record')
@click.option('--env-file', type=str, default='.env', show_default=True, help='.env file to read')
@click.option('--html', is_flag=True, help='Render presentations as HTML on stdout')
def run(script: str, args: tuple, config: tuple, mode: Optional[str],
        log_file: Optional[str], env_file: str, html: bool):
    """
    Run a Python script with fault handling installed.

    Options go before SCRIPT; everything after it is passed to the
    script. The exit status becomes 1 when the terminal procedure ran.

    Examples:
      faultline run app.py
      faultline run --mode production --log /var/log/app/errors.txt app.py
      faultline run app.py --app-flag value
    """
    overrides = {"mode": mode}
    if log_file:
        overrides["log_destination_terminal"] = log_file
        overrides["log_destination_background"] = log_file

    try:
        loaded = _load(config, env_file, overrides).to_config()
        core = ErrorHandlingCore(
            loaded,
            presenter=HTMLPresenter() if html else ConsolePresenter(),
        ).init()
    except FaultlineError as e:
        _fail(f"Invalid configuration: {e}")

    logger.debug(f"Running {script} under {core!r}")

    script_path = Path(script).resolve()
    sys.argv = [str(script_path), *args]
    sys.path.insert(0, str(script_path.parent))

    core.install_hooks()
    with core:
        runpy.run_path(str(script_path), run_name="__main__")


@cli.command('validate')
@click.option('--config', '-c', multiple=True, help='Config file (YAML or JSON); repeatable')
@click.option('--env-file', type=str, default='.env', show_default=True, help='.env file to read')
@click.pass_context
def validate(ctx, config: tuple, env_file: str):
    """
    Load and validate configuration.

    Log destinations are checked for writability (and created if missing).

    Examples:
      faultline validate
      faultline validate --config faultline.yaml
    """
    try:
        loader = _load(config, env_file, {})
        loaded = loader.to_config()
        ErrorHandlingCore(loaded).init()
    except FaultlineError as e:
        _fail(f"Invalid configuration: {e}")

    if ctx.obj['quiet']:
        return

    click.echo()
    success(f"  {_CHECK} Configuration is valid")
    click.echo()
    _print_summary(loaded, loader.sources)


def _print_summary(config: FaultlineConfig, sources: list):
    summary = config.to_dict()
    section("Configuration")
    kv("Sources", ", ".join(sources) or "defaults")
    kv("Mode", summary["mode"])
    kv("Ignore mask", " | ".join(describe_mask(config.ignore_mask)) or "none")
    kv("Background mask", " | ".join(describe_mask(config.background_mask)) or "none")
    kv("Terminal log", summary["log_destination_terminal"])
    kv("Background log", summary["log_destination_background"])
    for key in ("development_action", "production_action"):
        if summary[key]:
            kv(key.replace("_", " ").capitalize(), summary[key])
    for severity, name in summary["custom_actions"].items():
        kv(f"Custom action ({severity})", name)
    if summary["extra_log_data"]:
        kv("Extra log data", ", ".join(sorted(summary["extra_log_data"])))
    click.echo()


@cli.command('codes')
@click.option('--config', '-c', multiple=True, help='Config file (YAML or JSON); repeatable')
@click.option('--env-file', type=str, default='.env', show_default=True, help='.env file to read')
def codes(config: tuple, env_file: str):
    """
    Show the tier every fault code classifies to.

    Only the masks are read, so no log destination is needed.

    Examples:
      faultline codes
      faultline codes --config faultline.yaml
    """
    try:
        loader = _load(config, env_file, {})
        ignore = loader.get("ignore_mask", loader.get("errors_minor", DEFAULT_IGNORE_MASK))
        background = loader.get("background_mask", loader.get("errors_major", DEFAULT_BACKGROUND_MASK))
        policy = ClassificationPolicy(
            parse_mask(ignore, key="ignore_mask"),
            parse_mask(background, key="background_mask"),
        )
    except FaultlineError as e:
        _fail(f"Invalid configuration: {e}")

    tiers = policy.table()
    rows = []
    for code in SINGLE_CODES:
        note = "always" if code & CORE_FATAL else ""
        rows.append([code.name, str(int(code)), badge(tiers[code.name].value), note])

    click.echo()
    table(["Code", "Value", "Tier", ""], rows)
    click.echo()
    info(f"  {policy!r}")


def main():
    """Entry point for `faultline` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
