from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

import click
import schedule
from rich.console import Console
from rich.table import Table

from models.triage_rules import TriageRules
from services.auth_service import AuthService
from services.gmail_service import GmailService
from services.mailbox import MailboxDriver
from services.message_classifier import MessageClassifier
from services.statistics_service import StatisticsService
from services.triage_runner import TriageReport, TriageRunner
from utils.config import AppConfig, AccountConfig, load_config
from utils.eml_reader import load_eml
from utils.logger import configure_logging
from utils.rules_loader import load_triage_rules


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    account: AccountConfig
    rules: TriageRules
    stats: StatisticsService
    console: Console
    _mailbox: Optional[MailboxDriver] = field(default=None, repr=False)

    def mailbox(self) -> MailboxDriver:
        # Authentication is deferred so offline commands never open a browser.
        if self._mailbox is None:
            self._mailbox = GmailService(self.account, AuthService(self.account))
        return self._mailbox


def build_context(env_file: str, account_name: str | None) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level, config.console_log_level)
    account = config.get_account(account_name)
    rules = load_triage_rules(
        config.rules_file,
        dry_run=config.dry_run,
        allow_hard_delete=config.allow_hard_delete,
        batch_size=config.fetch_batch_size,
    )
    return AppContext(
        config=config,
        account=account,
        rules=rules,
        stats=StatisticsService(config.stats_file),
        console=Console(),
    )


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.option("--account", help="Account name defined in accounts.json")
@click.pass_context
def cli(ctx: click.Context, env_file: str, account: Optional[str]) -> None:
    """Classify Gmail threads as important, suspicious or spam."""

    try:
        ctx.obj = build_context(env_file, account)
    except KeyError as exc:  # invalid account
        raise click.BadParameter(str(exc), param_hint="--account") from exc


@cli.command("run")
@click.option("--max-results", type=int, default=None, help="Maximum threads per view")
@click.option("--dry-run/--apply", default=None, help="Suppress or allow moving spam to trash")
@click.option("--allow-delete/--no-delete", default=None, help="Override ALLOW_HARD_DELETE")
@click.option("--view", "views", multiple=True, help="Mailbox view to scan (repeatable)")
@click.pass_obj
def run_triage(
    app: AppContext,
    max_results: int | None,
    dry_run: bool | None,
    allow_delete: bool | None,
    views: Tuple[str, ...],
) -> None:
    """Classify unprocessed threads once and apply the resulting actions."""

    rules = _with_overrides(app.rules, dry_run, allow_delete)
    report = _perform_run(app, rules, views or app.config.scan_views, max_results)
    app.console.print(_build_report_table(report))
    _print_summary(app, rules, report)


@cli.command("inspect")
@click.argument("eml_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def inspect_message(app: AppContext, eml_file: Path) -> None:
    """Show the signals and verdict for a saved .eml file without touching Gmail."""

    message = load_eml(eml_file)
    result = MessageClassifier(app.rules).explain(message)
    signals, detections = result.signals, result.detections

    table = Table(title=f"Signals for {eml_file.name}")
    table.add_column("Signal")
    table.add_column("Value", overflow="fold")
    table.add_row("Sender domain", signals.sender_domain or "-")
    table.add_row("Reply-to domain", signals.reply_domain or "-")
    table.add_row("URLs", "\n".join(signals.urls) or "-")
    table.add_row("SPF pass", str(signals.spf_pass))
    table.add_row("DKIM pass", str(signals.dkim_pass))
    table.add_row("Known sender", str(detections.known_sender))
    table.add_row("Suspicious TLD", str(detections.weird_tld))
    table.add_row("Shortened URL", str(detections.shorteners))
    table.add_row("Urgent tone", str(detections.urgent))
    table.add_row("Importance keyword", str(detections.keyword))
    table.add_row("Domain mismatch", str(detections.mismatch))
    app.console.print(table)

    reasons = ", ".join(result.reasons) or "none"
    app.console.print(f"Verdict: [bold]{result.verdict.describe()}[/bold] (reasons: {reasons})")


@cli.command("setup")
@click.pass_obj
def setup_labels(app: AppContext) -> None:
    """Create the triage labels in Gmail if they do not exist."""

    runner = TriageRunner(app.mailbox(), app.rules, app.config.labels)
    for name, label_id in runner.ensure_labels().items():
        app.console.print(f"Label {name} is ready (id: {label_id}).")


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display local triage statistics."""

    snapshot = app.stats.snapshot()
    if not snapshot:
        app.console.print("No stats recorded yet.")
        return

    table = Table(title="Triage stats")
    table.add_column("Scope")
    table.add_column("Runs")
    table.add_column("Threads")
    table.add_column("Failures")
    table.add_column("Actions")
    table.add_row("all accounts", *_stats_row(snapshot))
    for name, data in snapshot.get("accounts", {}).items():
        table.add_row(name, *_stats_row(data))
    app.console.print(table)


@cli.command("schedule")
@click.option("--interval", type=int, default=15, show_default=True, help="Interval in minutes")
@click.option("--max-results", type=int, default=None, help="Maximum threads per view")
@click.option("--dry-run/--apply", default=None, help="Suppress or allow moving spam to trash")
@click.pass_obj
def schedule_runs(app: AppContext, interval: int, max_results: int | None, dry_run: bool | None) -> None:
    """Run triage on an interval using the schedule library."""

    rules = _with_overrides(app.rules, dry_run, None)

    def job() -> None:
        report = _perform_run(app, rules, app.config.scan_views, max_results)
        counts = ", ".join(f"{action}: {count}" for action, count in sorted(report.action_counts.items())) or "none"
        app.console.print(
            f"[scheduler] processed {report.processed} thread(s) ({counts}), "
            f"{len(report.failures)} failure(s)."
        )

    schedule.every(interval).minutes.do(job)

    app.console.print(
        f"Scheduling triage every {interval} minute(s) for account {app.account.name}. Press Ctrl+C to stop."
    )
    try:
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        app.console.print("Scheduler stopped.")


def main() -> None:
    cli(standalone_mode=True)


def _with_overrides(rules: TriageRules, dry_run: bool | None, allow_delete: bool | None) -> TriageRules:
    if dry_run is not None:
        rules = replace(rules, dry_run=dry_run)
    if allow_delete is not None:
        rules = replace(rules, allow_hard_delete=allow_delete)
    return rules


def _perform_run(
    app: AppContext, rules: TriageRules, views: Tuple[str, ...], max_results: int | None
) -> TriageReport:
    runner = TriageRunner(app.mailbox(), rules, app.config.labels)
    report = runner.run(views, max_results)
    app.stats.record_run(app.account.name, report.action_counts, len(report.failures))
    return report


def _build_report_table(report: TriageReport) -> Table:
    table = Table(title="Triage results", show_lines=False)
    table.add_column("Thread", overflow="fold")
    table.add_column("View")
    table.add_column("Verdict")
    table.add_column("Action")
    for outcome in report.outcomes:
        action = outcome.action.value if outcome.ok else f"[red]failed: {outcome.error}[/red]"
        table.add_row(outcome.thread_id, outcome.view, outcome.verdict.describe(), action)
    return table


def _print_summary(app: AppContext, rules: TriageRules, report: TriageReport) -> None:
    if not report.outcomes and not report.view_errors:
        app.console.print("[bold green]No unprocessed threads found.[/bold green]")
        return
    counts = ", ".join(f"{action}: {count}" for action, count in sorted(report.action_counts.items()))
    prefix = "[bold blue]Dry-run[/bold blue]" if rules.dry_run else "[bold blue]Applied[/bold blue]"
    app.console.print(f"{prefix} {counts or 'no actions'}")
    for view, error in report.view_errors.items():
        app.console.print(f"[red]Could not read {view}: {error}[/red]")
    if report.failures:
        app.console.print(f"[yellow]{len(report.failures)} thread(s) failed; they will be retried next run.[/yellow]")


def _stats_row(data: dict) -> list[str]:
    actions = data.get("actions", {})
    action_str = ", ".join(f"{action}: {count}" for action, count in sorted(actions.items())) or "-"
    return [
        str(data.get("runs", 0)),
        str(data.get("threads_processed", 0)),
        str(data.get("failures", 0)),
        action_str,
    ]


if __name__ == "__main__":
    main()
