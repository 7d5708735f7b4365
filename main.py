#!/usr/bin/env python3
"""Gateway Monitor - CLI Entry Point."""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()

SEVERITY_STYLES = {"critical": "bold red", "warning": "yellow", "info": "blue"}


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from config.runtime import RuntimeConfig, defaults_from_config
    from models.database import Database
    from alerts.mutes import MuteRegistry
    from alerts.evaluator import ThresholdEvaluator
    from alerts.dispatcher import AlertDispatcher
    from alerts.channels import ConsoleChannel, FileChannel
    from monitor.api.gateway import GatewayClient
    from monitor.api.observer import ObserverClient
    from monitor.monitor import GatewayMonitor

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    log_cfg = config.get("logging", {})
    setup_logging("DEBUG" if verbose else log_cfg.get("level", "INFO"), log_cfg.get("file") or None)

    db = Database(config["database"]["path"])
    db.connect()

    runtime = RuntimeConfig(db, defaults_from_config(config))
    mutes = MuteRegistry(db)

    channels = []
    alerts_cfg = config.get("alerts", {})
    if alerts_cfg.get("file"):
        channels.append(FileChannel(alerts_cfg["file"]))
    # Console only if running interactively
    if alerts_cfg.get("console", True) and sys.stdout.isatty():
        channels.append(ConsoleChannel())

    # Telegram (optional)
    telegram_bot = None
    tg_config = config.get("telegram", {})
    if tg_config.get("enabled") and tg_config.get("bot_token"):
        from notifications.telegram_bot import TelegramBot
        from alerts.telegram_channel import TelegramChannel
        telegram_bot = TelegramBot(tg_config["bot_token"], tg_config["chat_id"])
        channels.append(TelegramChannel(telegram_bot))

    gateway = GatewayClient.from_config(config)
    observer = ObserverClient.from_config(config)
    evaluator = ThresholdEvaluator(runtime, epoch_provider=observer)
    dispatcher = AlertDispatcher(mutes, channels, runtime, db=db)
    monitor = GatewayMonitor(db, gateway, observer, evaluator, dispatcher, runtime, config)

    return {
        "config": config, "db": db, "runtime": runtime, "mutes": mutes,
        "gateway": gateway, "observer": observer, "evaluator": evaluator,
        "dispatcher": dispatcher, "monitor": monitor, "telegram_bot": telegram_bot,
    }


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="gwmonitor")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Gateway Monitor - Health, resource and observer alerts for an AR.IO gateway."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
        ctx.call_on_close(ctx.obj["_components"]["db"].close)
    return ctx.obj["_components"]


def _severity_text(severity):
    sev = getattr(severity, "value", severity)
    style = SEVERITY_STYLES.get(sev, "")
    return f"[{style}]{sev.upper()}[/{style}]" if style else sev.upper()


# ──────────────────────────────────────────────────────
# RUN / CHECK / STATUS
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--no-announce", is_flag=True, help="Skip the startup message")
@click.pass_context
def run(ctx, no_announce):
    """Run the monitoring daemon until interrupted."""
    from monitor.scheduler import MonitorScheduler
    c = _get_components(ctx)
    scheduler = MonitorScheduler(c["monitor"], c["runtime"], c["config"])

    if not no_announce:
        c["monitor"].announce_startup()
    console.print("[bold]Gateway Monitor running.[/bold] Press Ctrl+C to stop.")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        scheduler.stop()
        console.print("\n[dim]Stopped.[/dim]")
    finally:
        c["gateway"].close()
        c["observer"].close()


@cli.command()
@click.option("--dispatch", is_flag=True, help="Send resulting alerts instead of only printing them")
@click.pass_context
def check(ctx, dispatch):
    """Run one health, resource and observer check and show the alerts it produces."""
    c = _get_components(ctx)
    evaluator = c["evaluator"]

    health = c["gateway"].check_health()
    sample = c["gateway"].get_metrics()
    candidates = evaluator.evaluate_health(health)
    candidates += evaluator.evaluate(sample, c["db"].latest_sample())
    if c["config"]["gateway"].get("address"):
        candidates += evaluator.evaluate_observer(c["observer"].check_observer_status())

    console.print(f"Gateway: [bold]{health.overall}[/bold] "
                  f"(core {health.core.response_time_ms}ms, observer {health.observer.response_time_ms}ms)")
    if not candidates:
        console.print("[green]All clear - no alerts triggered[/green]")
        return

    table = Table(title=f"{len(candidates)} alert(s) triggered", show_header=True)
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Alert")
    for cand in candidates:
        table.add_row(_severity_text(cand.severity), cand.category or "-",
                      cand.title or cand.body.split("\n")[0])
    console.print(table)

    if dispatch:
        outcomes = c["dispatcher"].dispatch_all(candidates)
        sent = sum(1 for o in outcomes if o.sent)
        console.print(f"Dispatched: {sent} sent, {len(outcomes) - sent} suppressed")


@cli.command()
@click.pass_context
def status(ctx):
    """Show the latest stored sample and mute state."""
    from utils.formatters import format_number, format_pct, format_remaining, time_ago
    from utils.constants import now_ms
    c = _get_components(ctx)
    sample = c["db"].latest_sample()

    if sample is None:
        console.print("[dim]No samples recorded yet. Start the monitor with: python main.py run[/dim]")
    else:
        table = Table(title=f"Latest Sample ({time_ago(sample.timestamp)})", show_header=True)
        table.add_column("Metric", style="dim")
        table.add_column("Value")
        rows = [
            ("CPU", format_pct(sample.cpu_percent)),
            ("Memory", format_pct(sample.memory_percent)),
            ("Disk", format_pct(sample.disk_percent)),
            ("Block Height", format_number(sample.last_height_imported)),
            ("Blocks Behind", format_number(sample.height_difference)),
            ("ArNS Cache Hit Rate", format_pct(sample.arns_cache_hit_rate)),
            ("Requests Total", format_number(sample.http_requests_total)),
            ("Observer Selected", "N/A" if sample.observer_selected is None
             else ("Yes" if sample.observer_selected else "No")),
        ]
        for name, val in rows:
            table.add_row(name, val)
        console.print(table)

    mutes = c["mutes"]
    now = now_ms()
    if mutes.is_globally_muted(now):
        console.print(f"[yellow]Alerts muted[/yellow] ({format_remaining(mutes.state.mute_until - now)} left)")
    else:
        console.print("[green]Alerts active[/green]")
    for category, until in sorted(mutes.muted_categories(now).items()):
        console.print(f"  [dim]muted:[/dim] {category} ({format_remaining(until - now)} left)")


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Alert history."""
    pass


@alerts.command("history")
@click.option("--limit", default=20, help="Number of alerts to show")
@click.pass_context
def alerts_history(ctx, limit):
    """Show past alerts, newest first."""
    from utils.formatters import format_timestamp
    c = _get_components(ctx)
    recent = c["db"].recent_alerts(limit=limit)
    if not recent:
        console.print("[dim]No alerts in history[/dim]")
        return
    table = Table(title="Alert History", show_header=True)
    table.add_column("Time", style="dim")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Alert")
    for a in recent:
        table.add_row(format_timestamp(a.timestamp), _severity_text(a.severity),
                      a.category or "-", (a.title or a.message.split("\n")[0])[:60])
    console.print(table)


# ──────────────────────────────────────────────────────
# MUTES
# ──────────────────────────────────────────────────────
def _parse_duration_arg(text):
    from utils.formatters import parse_duration
    try:
        return parse_duration(text)
    except ValueError as e:
        raise click.BadParameter(str(e))


@cli.command()
@click.argument("duration", default="1h")
@click.pass_context
def mute(ctx, duration):
    """Mute all alerts for DURATION (30m, 6h, 1d or forever)."""
    duration_ms = _parse_duration_arg(duration)
    c = _get_components(ctx)
    c["mutes"].mute_global(duration_ms)
    label = "until unmuted" if duration_ms is None else f"for {duration}"
    console.print(f"[yellow]All alerts muted {label}[/yellow]")


@cli.command()
@click.pass_context
def unmute(ctx):
    """Lift the global mute."""
    c = _get_components(ctx)
    c["mutes"].unmute()
    console.print("[green]Alerts unmuted[/green]")


@cli.command("mute-category")
@click.argument("category")
@click.argument("duration", default="1h")
@click.pass_context
def mute_category(ctx, category, duration):
    """Mute one alert CATEGORY (e.g. resource_cpu) for DURATION."""
    duration_ms = _parse_duration_arg(duration)
    c = _get_components(ctx)
    c["mutes"].mute_category(category, duration_ms)
    label = "until unmuted" if duration_ms is None else f"for {duration}"
    console.print(f"[yellow]{category} muted {label}[/yellow]")


@cli.command("unmute-category")
@click.argument("category", required=False)
@click.option("--all", "unmute_all", is_flag=True, help="Clear every mute, global included")
@click.pass_context
def unmute_category(ctx, category, unmute_all):
    """Unmute one CATEGORY, or everything with --all."""
    c = _get_components(ctx)
    if unmute_all:
        c["mutes"].unmute_all()
        console.print("[green]All mutes cleared[/green]")
        return
    if not category:
        raise click.UsageError("Give a CATEGORY or --all")
    c["mutes"].unmute_category(category)
    console.print(f"[green]{category} unmuted[/green]")


# ──────────────────────────────────────────────────────
# RUNTIME CONFIG
# ──────────────────────────────────────────────────────
@cli.group("config")
def config_group():
    """Runtime thresholds and presets."""
    pass


@config_group.command("show")
@click.pass_context
def config_show(ctx):
    """Show current runtime settings (* = changed from default)."""
    c = _get_components(ctx)
    runtime = c["runtime"]
    table = Table(title="Runtime Config", show_header=True)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_column("Default", style="dim")
    for key, value in runtime.as_dict().items():
        default = runtime.defaults.get(key)
        shown = f"[bold]{value}[/bold]" if value != default else str(value)
        table.add_row(key, shown, str(default))
    console.print(table)


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key, value):
    """Set KEY to VALUE."""
    from config.runtime import SCHEMA
    c = _get_components(ctx)
    if key not in SCHEMA:
        raise click.BadParameter(f"Unknown key {key!r}. Known: {', '.join(SCHEMA)}", param_hint="KEY")
    if not c["runtime"].set(key, value):
        console.print(f"[red]Rejected {key}={value}[/red] (kept {c['runtime'].get(key)})")
        ctx.exit(1)
    console.print(f"[green]{key} = {c['runtime'].get(key)}[/green]")


@config_group.command("preset")
@click.argument("name", type=click.Choice(["relaxed", "balanced", "strict"]))
@click.pass_context
def config_preset(ctx, name):
    """Apply a threshold preset."""
    c = _get_components(ctx)
    c["runtime"].set_preset(name)
    console.print(f"[green]Applied {name} preset[/green]")


@config_group.command("reset")
@click.pass_context
def config_reset(ctx):
    """Restore all runtime settings to defaults."""
    c = _get_components(ctx)
    c["runtime"].reset()
    console.print("[green]Runtime config reset to defaults[/green]")


# ──────────────────────────────────────────────────────
# SUMMARIES
# ──────────────────────────────────────────────────────
@cli.group()
def summary():
    """Daily and weekly summaries."""
    pass


@summary.command("daily")
@click.option("--send", is_flag=True, help="Send through the alert channels")
@click.pass_context
def summary_daily(ctx, send):
    """Show (or send) the last 24h summary."""
    from notifications.telegram_bot import format_daily_summary
    c = _get_components(ctx)
    if send:
        c["monitor"].send_daily_summary(force=True)
        console.print("[green]Daily summary sent[/green]")
        return
    console.print(format_daily_summary(c["monitor"].summaries.daily()).replace("*", ""))


@summary.command("weekly")
@click.option("--send", is_flag=True, help="Send through the alert channels, then prune old data")
@click.pass_context
def summary_weekly(ctx, send):
    """Show (or send) the last 7 days summary."""
    from notifications.telegram_bot import format_weekly_summary
    c = _get_components(ctx)
    if send:
        c["monitor"].send_weekly_summary(force=True)
        console.print("[green]Weekly summary sent[/green]")
        return
    console.print(format_weekly_summary(c["monitor"].summaries.weekly()).replace("*", ""))


# ──────────────────────────────────────────────────────
# DATABASE
# ──────────────────────────────────────────────────────
@cli.group()
def db():
    """Database maintenance."""
    pass


@db.command("stats")
@click.pass_context
def db_stats(ctx):
    """Show row counts and database size."""
    from utils.formatters import format_timestamp
    c = _get_components(ctx)
    stats = c["db"].get_stats()
    table = Table(title="Database", show_header=True)
    table.add_column("Item", style="dim")
    table.add_column("Value")
    table.add_row("Path", str(c["db"].db_path))
    table.add_row("Samples", f"{stats['metrics_rows']:,}")
    table.add_row("Alerts", f"{stats['alerts_rows']:,}")
    table.add_row("Snapshots", f"{stats['network_snapshots_rows']:,}")
    table.add_row("Oldest sample", format_timestamp(stats["oldest_sample"]))
    table.add_row("Newest sample", format_timestamp(stats["newest_sample"]))
    table.add_row("Size", f"{stats['size_bytes'] / 1024:.1f} KB")
    console.print(table)


@db.command("prune")
@click.option("--days", default=None, type=int, help="Keep this many days (default: database.retention_days)")
@click.option("--vacuum/--no-vacuum", default=True, help="Reclaim space afterwards")
@click.pass_context
def db_prune(ctx, days, vacuum):
    """Delete samples and alerts older than the retention window."""
    from utils.constants import DAY_MS, now_ms
    c = _get_components(ctx)
    keep_days = days if days is not None else c["config"]["database"].get("retention_days", 7)
    removed = c["db"].prune_older_than(now_ms() - keep_days * DAY_MS)
    if vacuum:
        c["db"].vacuum()
    console.print(f"[green]Removed {removed} row(s) older than {keep_days} days[/green]")


# ──────────────────────────────────────────────────────
# TELEGRAM
# ──────────────────────────────────────────────────────
@cli.group()
def telegram():
    """Telegram notifications."""
    pass


@telegram.command("test")
@click.pass_context
def telegram_test(ctx):
    """Verify the bot token and send a test message."""
    import requests
    c = _get_components(ctx)
    bot = c["telegram_bot"]
    if bot is None:
        console.print("[red]Telegram not configured.[/red] Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID.")
        ctx.exit(1)
    try:
        me = bot.verify_token()
        bot.send_message("✅ *Gateway Monitor* test message")
    except requests.RequestException as e:
        console.print(f"[red]Telegram test failed:[/red] {e}")
        ctx.exit(1)
    name = me.get("result", {}).get("username", "?")
    console.print(f"[green]Test message sent via @{name}[/green]")


if __name__ == "__main__":
    cli()
