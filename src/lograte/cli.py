from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import typer

from .config import (
    ConfigError,
    WatchConfig,
    apply_overrides,
    build_notifier,
    get_config_path,
    load_config,
    validate_notifier,
)
from .errors import InvalidArgument
from .watcher import RateWatcher

app = typer.Typer(add_completion=False, help="lograte: alert when a log file is written too often")

# Time allowed for a queued alert to go out before the process exits
FLUSH_TIMEOUT_SECONDS = 15.0


@app.callback()
def main() -> None:
    """Watch a log file and notify when writes exceed a per-minute threshold."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_config(
    path: Path | None,
    config_path: Path | None,
    threshold: int | None,
    duration: float | None,
    ntfy_topic: str | None,
    ntfy_server: str | None,
    webhook_url: str | None,
) -> WatchConfig:
    config_path = config_path or get_config_path()
    if config_path is not None:
        cfg = load_config(config_path)
    elif path is not None:
        cfg = WatchConfig(path=path)
    else:
        raise ConfigError("Must provide a log file PATH or --config")

    cfg = apply_overrides(cfg, path=path, threshold_per_minute=threshold, duration_seconds=duration)

    notifier = cfg.notifier
    if ntfy_topic:
        notifier = replace(notifier, type="ntfy", topic=ntfy_topic)
    if ntfy_server:
        notifier = replace(notifier, server=ntfy_server)
    if webhook_url:
        notifier = replace(notifier, type="webhook", url=webhook_url)
    validate_notifier(notifier)

    if cfg.duration_seconds <= 0:
        raise ConfigError("--duration must be positive")
    return replace(cfg, notifier=notifier)


@app.command("watch")
def watch_cmd(
    path: Path | None = typer.Argument(None, help="Log file to watch"),
    threshold: int | None = typer.Option(None, "--threshold", "-t", help="Max writes per minute (default 10)"),
    duration: float | None = typer.Option(None, "--duration", "-d", help="Seconds to watch (default 300)"),
    config: Path | None = typer.Option(None, "--config", help="Path to JSON config (or LOGRATE_CONFIG)"),
    ntfy_topic: str | None = typer.Option(None, "--ntfy-topic", help="Send alerts to this ntfy topic"),
    ntfy_server: str | None = typer.Option(None, "--ntfy-server", help="Override ntfy server URL"),
    webhook_url: str | None = typer.Option(None, "--webhook-url", help="POST alerts to this URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Watch a log file for a fixed duration."""
    _configure_logging(verbose)

    try:
        cfg = _resolve_config(path, config, threshold, duration, ntfy_topic, ntfy_server, webhook_url)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    watcher = RateWatcher(build_notifier(cfg.notifier))
    try:
        handle = watcher.start(cfg.path, cfg.threshold_per_minute)
    except InvalidArgument as exc:
        raise typer.BadParameter(str(exc)) from exc

    if handle.error is None:
        typer.secho(
            f"Watching {cfg.path} for {cfg.duration_seconds:g}s "
            f"(threshold {cfg.threshold_per_minute}/min, notifier {cfg.notifier.type})",
            fg=typer.colors.GREEN,
        )
        try:
            handle.wait(cfg.duration_seconds)
        except KeyboardInterrupt:
            typer.echo("Interrupted")
        finally:
            if not handle.flush(timeout=FLUSH_TIMEOUT_SECONDS):
                typer.secho("Pending notification did not finish before exit", fg=typer.colors.YELLOW)
            watcher.stop(handle)

    if handle.error is not None:
        typer.secho(f"Watch failed: {handle.error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo("Watch finished.")


if __name__ == "__main__":
    app()
