"""
notifyme command line.

    notifyme run -c default -- make test
    notifyme list | create NAME | show NAME | delete NAME
    notifyme add NAME telegram token=... chat_id=...
    notifyme test NAME
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
import structlog

from notifyme import __version__
from notifyme.config import settings
from notifyme.dispatcher import RunReport, dispatch, run_and_notify
from notifyme.errors import NotifyMeError
from notifyme.notifications import SendResult, build_senders
from notifyme.store import ConfigStore

logger = structlog.get_logger()

TEST_MESSAGE = "notifyme test message: this channel is configured correctly."


def configure_logging(level: str | None = None):
    # Logs go to stderr; stdout belongs to the child command's echoed output.
    level_no = logging.getLevelNamesMapping().get((level or settings.LOG_LEVEL).upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.dev.ConsoleRenderer()
                if settings.APP_ENV == "development"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # sys.stderr can be swapped after configuration; do not pin the first stream
        cache_logger_on_first_use=False,
    )


def _parse_params(pairs: tuple[str, ...]) -> dict:
    """key=value pairs -> dict; dotted keys nest (smtp.host=...)."""
    params: dict = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}")
        node = params
        *parents, leaf = key.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return params


def _echo_results(results: list[SendResult]):
    for r in results:
        status = "ok" if r.success else f"FAILED ({r.error})"
        click.echo(f"  {r.channel} -> {r.target}: {status}", err=True)


async def _run(store: ConfigStore, name: str, cmd: str, args: list[str]) -> RunReport:
    config_set = store.read(name)
    build = await build_senders(config_set.channels, strict=settings.STRICT_CHANNELS)
    if not build.senders:
        logger.warning("run.no_senders", config_set=name)
    try:
        return await run_and_notify(
            cmd, args, build.senders, concurrent=settings.CONCURRENT_DELIVERY
        )
    finally:
        for sender in build.senders:
            await sender.aclose()


async def _test(store: ConfigStore, name: str) -> list[SendResult]:
    config_set = store.read(name)
    build = await build_senders(config_set.channels, strict=settings.STRICT_CHANNELS)
    try:
        results = await dispatch(build.senders, TEST_MESSAGE)
    finally:
        for sender in build.senders:
            await sender.aclose()
    skipped = [
        SendResult(channel=e.kind or "unknown", success=False, target="-", error=str(e))
        for e in build.errors
    ]
    return results + skipped


@click.group()
@click.version_option(version=__version__, prog_name="notifyme")
@click.option("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR. Defaults to NOTIFYME_LOG_LEVEL or INFO.")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding config sets. Defaults to NOTIFYME_CONFIG_DIR.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, config_dir: Path | None) -> None:
    """Run a command and send its output to chat bots and webhooks."""
    configure_logging(log_level)
    ctx.obj = ConfigStore(config_dir)


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.option("-c", "--config-set", default=None, help="Config set name (default: NOTIFYME_DEFAULT_CONFIG_SET).")
@click.argument("cmd")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
def run(store: ConfigStore, config_set: str | None, cmd: str, args: tuple[str, ...]) -> None:
    """Run CMD with ARGS and notify every channel of the result."""
    name = config_set or settings.DEFAULT_CONFIG_SET
    try:
        report = asyncio.run(_run(store, name, cmd, list(args)))
    except NotifyMeError as e:
        logger.error("run.aborted", config_set=name, error=str(e))
        sys.exit(1)

    if report.delivery_failures:
        _echo_results(report.results)
    if not report.ok:
        sys.exit(1)


@cli.command("list")
@click.pass_obj
def list_sets(store: ConfigStore) -> None:
    """List available config sets."""
    click.echo("Available configuration sets:")
    for name in store.list_sets():
        click.echo(f"- {name}")


@cli.command()
@click.argument("name")
@click.pass_obj
def create(store: ConfigStore, name: str) -> None:
    """Create an empty config set."""
    try:
        store.create(name)
    except NotifyMeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Config set '{name}' created.")


@cli.command()
@click.argument("name")
@click.pass_obj
def show(store: ConfigStore, name: str) -> None:
    """Print a config set."""
    try:
        config_set = store.read(name)
    except NotifyMeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(config_set.model_dump_json(indent=2))


@cli.command()
@click.argument("name")
@click.argument("kind")
@click.argument("params", nargs=-1)
@click.pass_obj
def add(store: ConfigStore, name: str, kind: str, params: tuple[str, ...]) -> None:
    """Add a KIND channel to config set NAME from key=value PARAMS."""
    channel = {"type": kind, **_parse_params(params)}
    try:
        config_set = store.add_channel(name, channel)
    except NotifyMeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Added {kind} channel to '{name}' ({len(config_set.channels)} channel(s)).")


@cli.command()
@click.argument("name")
@click.pass_obj
def delete(store: ConfigStore, name: str) -> None:
    """Delete a config set."""
    try:
        store.delete(name)
    except NotifyMeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Config set '{name}' deleted.")


@cli.command("test")
@click.argument("name")
@click.pass_obj
def test_channels(store: ConfigStore, name: str) -> None:
    """Send a test message to every channel of config set NAME."""
    try:
        results = asyncio.run(_test(store, name))
    except NotifyMeError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Config set '{name}':")
    for r in results:
        status = "ok" if r.success else f"FAILED ({r.error})"
        click.echo(f"  {r.channel} -> {r.target}: {status}")
    if any(not r.success for r in results):
        sys.exit(1)


if __name__ == "__main__":
    cli()
