"""
Reporter for rendering the review queue with Rich formatting.

This module provides the QueueReporter class for displaying queue groups,
summary tiles, drill-down lists, grade breakdowns and dispatch outcomes in
the terminal.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from qgate.core.grading.engine import GradeComputation
from qgate.core.review.classify import ClassifiedReviews, ReviewGroup, ReviewGroupKey
from qgate.core.review.models import DispatchOutcome, ReviewSession, ReviewStatus
from qgate.core.review.summary import ReviewSummary, SummaryItem, SummaryMetric

TIME_FORMAT = "%H:%M"
DATE_FORMAT = "%d %b"


def _status_style(status: ReviewStatus) -> str:
    """Get Rich style for a review status."""
    if status == ReviewStatus.PENDING:
        return "yellow"
    elif status == ReviewStatus.PASSED:
        return "green"
    else:
        return "red"


def _group_style(key: ReviewGroupKey) -> str:
    if key == ReviewGroupKey.CRITICAL:
        return "bold red"
    elif key == ReviewGroupKey.REVISE:
        return "bold magenta"
    elif key == ReviewGroupKey.TODAY:
        return "bold blue"
    else:
        return "bold"


def _status_badge(status: ReviewStatus) -> Text:
    style = _status_style(status)
    return Text(f"[{status.value}]", style=style)


def _asset_link(name: str | None, url: str | None) -> Text:
    """Latest draft as 'draft: <name> <url>', the URL a terminal hyperlink."""
    text = Text(f"▶ draft: {name or 'latest file'}", style="blue")
    if url:
        text.append(" ")
        text.append(url, style=Style(color="blue", underline=True, link=url))
    return text


class QueueReporter:
    """Reporter for rendering quality gate output with Rich formatting."""

    def __init__(
        self,
        console: Console | None = None,
        channel_names: dict[str, str] | None = None,
        user_names: dict[str, str] | None = None,
    ) -> None:
        """Initialize the reporter.

        Args:
            console: Rich console for output (creates default if None)
            channel_names: Optional channel id -> name map
            user_names: Optional user id -> name map
        """
        self.console = console or Console()
        self.channel_names = channel_names or {}
        self.user_names = user_names or {}

    def render_queue(self, classified: ClassifiedReviews, *, expand_all: bool = False) -> None:
        """Render the four urgency groups in order."""
        if not classified.filtered:
            self.console.print("[dim]No reviews match the current filters.[/dim]")
            return

        for group in classified.groups():
            self._render_group(group, expand_all=expand_all)

    def _render_group(self, group: ReviewGroup, *, expand_all: bool) -> None:
        style = _group_style(group.key)
        collapsed = group.collapsed and not expand_all
        marker = "▸" if collapsed else "▾"
        self.console.print(f"[{style}]{marker} {group.label} ({group.count})[/{style}]")

        if collapsed:
            return
        if not group.sessions:
            self.console.print("    [dim]Nothing here.[/dim]")
            self.console.print()
            return

        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("When", style="dim")
        table.add_column("Review")
        table.add_column("Draft")
        table.add_column("Title")
        table.add_column("Channel", style="dim")
        table.add_column("Status")
        for session in group.sessions:
            table.add_row(
                session.scheduled_at.strftime(f"{DATE_FORMAT} {TIME_FORMAT}"),
                session.id,
                str(session.round),
                self._title_cell(session),
                self._channel_name(session),
                _status_badge(session.status),
            )
        self.console.print(table)
        self.console.print()

    def _title_cell(self, session: ReviewSession) -> Text:
        text = Text(session.title)
        task = session.task
        if task is not None:
            asset = task.latest_asset
            if asset is None:
                text.append("  (no file attached)", style="dim")
            else:
                text.append("\n  ")
                text.append_text(_asset_link(asset.name, asset.url))
            if task.caution:
                text.append(f"\n  ⚠ caution: {task.caution}", style="yellow")
            if task.importance:
                text.append(f"\n  ℹ key point: {task.importance}", style="cyan")
        if session.feedback:
            text.append(f"\n  feedback: {session.feedback}", style="red")
        return text

    def _channel_name(self, session: ReviewSession) -> str:
        channel_id = session.task.channel_id if session.task else None
        if channel_id is None:
            return "Unknown Channel"
        return self.channel_names.get(channel_id, channel_id)

    def render_summary(self, summary: ReviewSummary) -> None:
        """Render the four summary tiles."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Label", style="dim")
        table.add_column("Count", justify="right")
        table.add_row("Pending:", f"[yellow]{summary.pending}[/yellow]")
        table.add_row("Passed today:", f"[green]{summary.passed_today}[/green]")
        table.add_row("Revise:", f"[red]{summary.revise}[/red]")
        table.add_row("Overdue:", f"[bold red]{summary.overdue}[/bold red]")
        self.console.print(Panel(table, title="Quality Gate", expand=False))

    def render_drilldown(self, metric: SummaryMetric, items: list[SummaryItem]) -> None:
        """Render the detail rows behind one summary tile."""
        label = metric.value.replace("_", " ").title()
        self.console.print(f"[bold]{label}[/bold] ({len(items)})")
        for item in items:
            submitter = item.submitter_name or item.submitter_id or "-"
            when = item.scheduled_at.strftime(f"{DATE_FORMAT} {TIME_FORMAT}")
            self.console.print(
                f"  {when}  {item.round_label}  {escape(item.title)}  [dim]{escape(submitter)}[/dim]"
            )
            if item.latest_asset_name or item.latest_asset_url:
                self.console.print(
                    Text("      ").append_text(
                        _asset_link(item.latest_asset_name, item.latest_asset_url)
                    )
                )
            if item.caution:
                self.console.print(Text(f"      ⚠ caution: {item.caution}", style="yellow"))
            if item.importance:
                self.console.print(Text(f"      ℹ key point: {item.importance}", style="cyan"))
            if item.feedback:
                self.console.print(Text(f"      └ {item.feedback}", style="red"))

    def render_grade(self, title: str, computation: GradeComputation) -> None:
        """Render a grade breakdown."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Label", style="dim")
        table.add_column("XP", justify="right")
        table.add_row(f"Base ({computation.difficulty.value}):", str(computation.base_xp))
        table.add_row("Time bonus:", str(computation.time_bonus_xp))
        table.add_row("Adjustment:", f"{computation.adjustment_xp:+d}")
        table.add_row("[bold]Total:[/bold]", f"[bold]{computation.total_xp}[/bold]")
        self.console.print(Panel(table, title=title, expand=False))

    def render_outcome(self, outcome: DispatchOutcome) -> None:
        """Render the result of a PASS or REVISE action."""
        if not outcome.success:
            self.console.print(f"[red]✗[/red] {outcome.action.value} failed: {outcome.error}")
            return

        self.console.print(
            f"[green]✓[/green] Review {outcome.session_id} is now ", end=""
        )
        if outcome.status is not None:
            self.console.print(_status_badge(outcome.status))
        if outcome.awarded_xp is not None:
            recipients = ", ".join(
                self.user_names.get(uid, uid) for uid in outcome.awarded_user_ids
            )
            self.console.print(f"  +{outcome.awarded_xp} XP to {recipients or 'nobody'}")
