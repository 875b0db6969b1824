import logging
from pathlib import Path

import click

from mindful_jira import __version__
from mindful_jira.config import (
    DEBUG_LOG_FILENAME,
    DEFAULT_REFRESH_INTERVAL,
    JiraConfig,
    default_config_dir,
    default_status_filters,
    load_config,
    save_config,
)
from mindful_jira.context import DashContext
from mindful_jira.core.errors import ConfigError, StorageFailure
from mindful_jira.core.filtering import SortKey
from mindful_jira.tui.app import MindfulJiraApp

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])
CONFIG_DIR_META = "mindful_jira.config_dir"


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mindful-jira")
@click.option("--debug", is_flag=True, help="Write debug logging to debug.log in the config directory")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding config.toml and annotations.toml",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config_dir: Path | None) -> None:
    """Browse and annotate your assigned Jira issues.

    Without a subcommand, opens the dashboard.
    """
    resolved_dir = config_dir if config_dir is not None else default_config_dir()
    ctx.meta[CONFIG_DIR_META] = resolved_dir

    if debug:
        # The dashboard owns the terminal, so debug output goes to a file.
        resolved_dir.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=logging.DEBUG,
            filename=resolved_dir / DEBUG_LOG_FILENAME,
            format="%(name)s - %(levelname)s - %(message)s",
        )

    if ctx.invoked_subcommand is None:
        ctx.invoke(dash)


@click.command("dash")
@click.option(
    "--refresh-interval",
    type=float,
    default=None,
    help="Seconds between automatic refreshes (0 disables)",
)
@click.pass_context
def dash(ctx: click.Context, refresh_interval: float | None) -> None:
    """Open the interactive issue dashboard."""
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        config_dir = ctx.meta[CONFIG_DIR_META]
        try:
            ctx.obj = DashContext.for_production(config_dir)
        except (ConfigError, StorageFailure) as e:
            click.echo(click.style("Error: ", fg="red") + str(e), err=True)
            raise SystemExit(1) from e

    dash_ctx: DashContext = ctx.obj
    app = MindfulJiraApp(dash_ctx, refresh_interval=refresh_interval)
    dash_ctx.tui_runner.run(app)


@click.command("setup")
@click.pass_context
def setup(ctx: click.Context) -> None:
    """Create or update config.toml interactively.

    Existing values are offered as defaults; status filters, sort order and
    refresh interval are preserved.
    """
    config_dir: Path = ctx.meta[CONFIG_DIR_META]
    try:
        existing: JiraConfig | None = load_config(config_dir)
    except ConfigError:
        existing = None

    jira_url = click.prompt(
        "Jira URL", default=existing.jira_url if existing is not None else None
    ).strip()
    if not jira_url.startswith(("http://", "https://")):
        jira_url = f"https://{jira_url}"
    email = click.prompt("Email", default=existing.email if existing is not None else None).strip()
    api_token = click.prompt(
        "API token",
        hide_input=True,
        default=existing.api_token if existing is not None else None,
        show_default=False,
    ).strip()

    config = JiraConfig(
        jira_url=jira_url,
        email=email,
        api_token=api_token,
        status_filters=(
            existing.status_filters if existing is not None else default_status_filters()
        ),
        refresh_interval=(
            existing.refresh_interval if existing is not None else DEFAULT_REFRESH_INTERVAL
        ),
        sort_key=existing.sort_key if existing is not None else SortKey.REMOTE,
    )
    cfg_path = save_config(config_dir, config)
    click.echo(f"Wrote {cfg_path}")


cli.add_command(dash)
cli.add_command(setup)


def main() -> None:
    """CLI entry point used by the `mindful-jira` console script."""
    cli()
