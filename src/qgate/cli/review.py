"""
qgate CLI - Review queue and action commands.

Reads review sessions, tasks and users from the JSON store, renders the
queue and summary, previews grades, and applies PASS / REVISE decisions.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from qgate.cli.errors import (
    ExitCode,
    print_error,
    print_store_not_found_error,
    print_user_not_found_error,
)
from qgate.core.config.loader import load_config
from qgate.core.config.models import GateConfig
from qgate.core.grading.engine import (
    AdjustmentPreset,
    clamp_adjustment,
    compute_grade,
    snap_adjustment,
)
from qgate.core.review.classify import DateScope
from qgate.core.review.formatter import items_to_json, queue_to_json, to_json
from qgate.core.review.models import ActionPayload, DispatchOutcome, ReviewAction
from qgate.core.review.reporter import QueueReporter
from qgate.core.review.service import QualityGateService
from qgate.core.review.summary import SummaryMetric
from qgate.core.store.json import JsonGateStore, StoreFileCorruptedError, StoreFileNotFoundError
from qgate.core.tasks.models import User
from qgate.utils.logging import GateLogger
from qgate.utils.project import find_project_root, resolve_in_project

console = Console()
err_console = Console(stderr=True)


@dataclass
class GateContext:
    """Everything a command needs, resolved from options and config."""

    root: Path
    config: GateConfig
    store: JsonGateStore
    service: QualityGateService

    @property
    def user_names(self) -> dict[str, str]:
        return {uid: user.name or uid for uid, user in self.store.users.items()}


def _open(ctx: typer.Context, *, with_gate_log: bool = False) -> GateContext:
    """Load config and open the store, exiting with USER_ERROR if it is unusable."""
    root = find_project_root() or Path.cwd()
    config = load_config(project_dir=root)

    store_option = ctx.obj.get("store") if ctx.obj else None
    store_path = resolve_in_project(store_option or config.store.path, root)

    try:
        store = JsonGateStore.open(store_path, config.permissions)
    except StoreFileNotFoundError:
        print_store_not_found_error(str(store_path))
        raise typer.Exit(ExitCode.USER_ERROR)
    except StoreFileCorruptedError as e:
        print_error("Store file is corrupted", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    gate_log = None
    if with_gate_log and config.store.log_dir:
        gate_log = GateLogger.init(resolve_in_project(config.store.log_dir, root))

    service = QualityGateService(
        reviews=store,
        tasks=store,
        xp=store,
        notifier=store,
        task_log=store,
        config=config,
        gate_log=gate_log,
    )
    return GateContext(root=root, config=config, store=store, service=service)


def _parse_choice(value: str, option: str, choices: list[str]) -> str:
    normalized = value.strip().lower().replace("_", "-")
    if normalized not in choices:
        print_error(
            f"Invalid value for {option}: '{value}'",
            reason=f"Expected one of: {', '.join(choices)}",
        )
        raise typer.Exit(ExitCode.USER_ERROR)
    return normalized


def _resolve_adjustment(config: GateConfig, adjust: int, preset: str | None) -> int:
    """Preset replaces --adjust; the result is snapped to a slider position in range."""
    if preset is not None:
        name = _parse_choice(preset, "--preset", [p.name.lower() for p in AdjustmentPreset])
        adjust = AdjustmentPreset[name.upper()].value

    grading = config.grading
    snapped = snap_adjustment(adjust, grading.adjustment_step)
    if snapped != adjust:
        err_console.print(
            f"[yellow]Warning:[/yellow] adjustment {adjust:+d} is not a multiple of "
            f"{grading.adjustment_step}, using {snapped:+d}"
        )

    clamped = clamp_adjustment(snapped, grading.adjustment_min, grading.adjustment_max)
    if clamped != snapped:
        err_console.print(
            f"[yellow]Warning:[/yellow] adjustment {snapped:+d} is outside "
            f"[{grading.adjustment_min}, {grading.adjustment_max}], using {clamped:+d}"
        )
    return clamped


def _require_user(gate: GateContext, user_id: str) -> User:
    user = gate.store.users.get(user_id)
    if user is None:
        print_user_not_found_error(user_id)
        raise typer.Exit(ExitCode.USER_ERROR)
    return user


def _require_session(gate: GateContext, session_id: str) -> None:
    if session_id not in gate.store.reviews:
        print_error(
            f"Review '{session_id}' not found",
            solution="qgate queue  # list open reviews",
        )
        raise typer.Exit(ExitCode.USER_ERROR)


def _finish(gate: GateContext, outcome: DispatchOutcome, json_output: bool) -> None:
    if json_output:
        typer.echo(to_json(outcome))
    elif outcome.success:
        QueueReporter(console, user_names=gate.user_names).render_outcome(outcome)

    if not outcome.success:
        if not json_output:
            print_error(
                f"Could not {outcome.action.value.lower()} review '{outcome.session_id}'",
                reason=outcome.error,
            )
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def queue(
    ctx: typer.Context,
    channel: str | None = typer.Option(
        None,
        "--channel",
        "-c",
        help="Only show reviews for this channel ID",
    ),
    search: str = typer.Option(
        "",
        "--search",
        "-s",
        help="Case-insensitive search in task titles",
    ),
    scope: str = typer.Option(
        "all-pending",
        "--scope",
        help="all-pending, today or overdue",
    ),
    expand_all: bool = typer.Option(
        False,
        "--expand-all",
        help="Expand groups that are collapsed by default",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show the review queue grouped by urgency.

    Groups are Overdue, Needs Revision, Today and Upcoming. Upcoming is
    collapsed to a count unless --expand-all is given.

    Examples:
        qgate queue
        qgate queue --scope overdue
        qgate queue --channel ch-food --search interview
    """
    scope_name = _parse_choice(scope, "--scope", ["all-pending", "today", "overdue"])
    gate = _open(ctx)

    board = asyncio.run(gate.service.snapshot())
    query = (
        gate.service.default_query()
        .with_channel(channel)
        .with_search(search)
        .with_scope(DateScope(scope_name.upper().replace("-", "_")))
    )
    classified = board.classify(query)

    if json_output:
        typer.echo(queue_to_json(classified))
        return

    QueueReporter(console, user_names=gate.user_names).render_queue(
        classified, expand_all=expand_all
    )


def summary(
    ctx: typer.Context,
    metric: str | None = typer.Option(
        None,
        "--metric",
        "-m",
        help="Drill into one tile: pending, passed-today, revise or overdue",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show the summary tiles, or the reviews behind one of them.

    Examples:
        qgate summary
        qgate summary --metric overdue
        qgate summary --json
    """
    metric_enum = None
    if metric is not None:
        choices = [m.value.replace("_", "-") for m in SummaryMetric]
        metric_enum = SummaryMetric(_parse_choice(metric, "--metric", choices).replace("-", "_"))

    gate = _open(ctx)
    board = asyncio.run(gate.service.snapshot())
    reporter = QueueReporter(console, user_names=gate.user_names)

    if metric_enum is None:
        tiles = board.summary()
        if json_output:
            typer.echo(to_json(tiles))
        else:
            reporter.render_summary(tiles)
        return

    items = board.drilldown(metric_enum, gate.user_names)
    if json_output:
        typer.echo(items_to_json(items))
    else:
        reporter.render_drilldown(metric_enum, items)


def grade_task(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to grade"),
    adjust: int = typer.Option(
        0,
        "--adjust",
        "-a",
        help="Reviewer adjustment in XP",
    ),
    preset: str | None = typer.Option(
        None,
        "--preset",
        "-p",
        help="late (-20), good (+20), excellent (+50) or reset (0)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Preview the XP a task would be awarded if its review passed.

    Examples:
        qgate grade t-42
        qgate grade t-42 --adjust 30
        qgate grade t-42 --preset excellent --json
    """
    gate = _open(ctx)
    adjustment = _resolve_adjustment(gate.config, adjust, preset)

    task = asyncio.run(gate.store.get_task(task_id))
    if task is None:
        print_error(f"Task '{task_id}' not found")
        raise typer.Exit(ExitCode.USER_ERROR)

    computation = compute_grade(task, adjustment, config=gate.config.grading)
    if json_output:
        typer.echo(to_json(computation))
        return

    QueueReporter(console).render_grade(task.title or task.id, computation)


def pass_cmd(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Review ID to pass"),
    as_user: str = typer.Option(
        ...,
        "--as",
        help="ID of the acting reviewer",
    ),
    adjust: int = typer.Option(
        0,
        "--adjust",
        "-a",
        help="Reviewer adjustment in XP",
    ),
    preset: str | None = typer.Option(
        None,
        "--preset",
        "-p",
        help="late (-20), good (+20), excellent (+50) or reset (0)",
    ),
    feedback: str | None = typer.Option(
        None,
        "--feedback",
        "-f",
        help="Optional note stored with the decision",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Approve a pending review, mark the task DONE and award XP.

    Examples:
        qgate pass rv-7 --as u-lead
        qgate pass rv-7 --as u-lead --preset good
    """
    gate = _open(ctx, with_gate_log=True)
    user = _require_user(gate, as_user)
    _require_session(gate, session_id)
    adjustment = _resolve_adjustment(gate.config, adjust, preset)

    dispatcher = gate.service.dispatcher_for(user)
    payload = ActionPayload(adjustment_xp=adjustment, feedback=feedback)
    outcome = asyncio.run(dispatcher.execute(session_id, ReviewAction.PASS, payload))
    _finish(gate, outcome, json_output)


def revise_cmd(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Review ID to send back"),
    as_user: str = typer.Option(
        ...,
        "--as",
        help="ID of the acting reviewer",
    ),
    reasons: list[str] | None = typer.Option(
        None,
        "--reason",
        "-r",
        help="Quick reason (text, or its number in the configured list); repeatable",
    ),
    feedback: str | None = typer.Option(
        None,
        "--feedback",
        "-f",
        help="What needs to change",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Send a pending review back for revision and move the task to DOING.

    Examples:
        qgate revise rv-7 --as u-lead --feedback "Cut the intro to 10s"
        qgate revise rv-7 --as u-lead --reason 1 --reason 3
    """
    gate = _open(ctx, with_gate_log=True)
    user = _require_user(gate, as_user)
    _require_session(gate, session_id)

    canned = gate.config.review.quick_reasons
    resolved = []
    for reason in reasons or []:
        if reason.isdigit() and 1 <= int(reason) <= len(canned):
            resolved.append(canned[int(reason) - 1])
        else:
            resolved.append(reason)

    dispatcher = gate.service.dispatcher_for(user)
    payload = ActionPayload(feedback=feedback, quick_reasons=resolved)
    outcome = asyncio.run(dispatcher.execute(session_id, ReviewAction.REVISE, payload))
    _finish(gate, outcome, json_output)
