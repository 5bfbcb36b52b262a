"""Grading sheet export and import, statistics and notification delivery from the command line."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.orm import Session

import coursework.lib.cli as click
from coursework import notification
from coursework.core import di
from coursework.grading import export, GradingError, statistics, workflow
from coursework.lib import json
from coursework.model import AssessmentID, User
from coursework.storage import user as user_storage


@click.group("grading")
def grading():
    """Grade submissions in bulk and deliver grade notifications."""
    ...


def _acting_user(email: str, session: Session) -> User:
    found = user_storage.get(email=email, session=session)
    if found is None:
        raise click.ClickException(f"User '{email}' not found.")
    return found


@grading.command("export")
@click.argument("assessment_id", type=click.KeyParamType(AssessmentID))
@click.option("--as", "-a", "email", required=True, help="Email of the instructor exporting the sheet")
@click.option(
    "--output",
    "-O",
    type=click.Path(dir_okay=True, file_okay=True, path_type=Path),
    default=None,
    help="File or directory to write to (the state directory by default)",
)
@di.inject
def grading_export(
    assessment_id: AssessmentID,
    email: str,
    output: Path | None,
    state_path: Path = di.Provide["state_path"],
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Write the grading sheet of ASSESSMENT_ID as CSV."""
    with session.begin():
        try:
            gs = export.sheet(_acting_user(email, session), assessment_id, session=session)
        except GradingError as e:
            raise click.ClickException(e.message) from e

    target = output or state_path
    if target.is_dir():
        target = target / export.filename(gs)
    target.write_text(export.to_csv(gs), encoding="utf8")
    click.echo(f"Wrote {gs.stats.total} submissions to {target}")
    click.echo(f"  Graded: {gs.stats.graded}  Pending: {gs.stats.pending}  Late: {gs.stats.late}")


@grading.command("import")
@click.argument("assessment_id", type=click.KeyParamType(AssessmentID))
@click.argument("sheet", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--as", "-a", "email", required=True, help="Email of the instructor recording the grades")
@click.option("--return", "return_to_students", is_flag=True, default=False, help="Return graded work to students")
@di.inject
def grading_import(
    assessment_id: AssessmentID,
    sheet: Path,
    email: str,
    return_to_students: bool,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Record the grades filled in on SHEET for ASSESSMENT_ID.

    Rows left without a new grade are skipped; if any row is rejected, nothing is recorded.
    """
    try:
        with sheet.open("rb") as f:
            entries = export.read_csv(f)
        if not entries:
            click.echo("No grades to record.")
            return
        with session.begin():
            outcome = workflow.bulk_grade(
                _acting_user(email, session),
                assessment_id,
                entries,
                return_to_students=return_to_students,
                session=session,
            )
    except GradingError as e:
        raise click.ClickException(e.message) from e

    for r in outcome.results:
        penalty = f" (late penalty {r.late_penalty_applied:g})" if r.late_penalty_applied else ""
        click.echo(f"  {r.submission_id} {r.student_name or ''}: {r.final_grade:g}{penalty}")
    click.echo(
        f"Graded {outcome.stats.total_graded} submissions"
        f" ({outcome.stats.newly_graded} new, {outcome.stats.with_late_penalty} with late penalty)"
    )


@grading.command("stats")
@click.argument("assessment_id", type=click.KeyParamType(AssessmentID))
@click.option("--as", "-a", "email", required=True, help="Email of the instructor viewing the statistics")
@di.inject
def grading_stats(
    assessment_id: AssessmentID,
    email: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Print submission and grade statistics for ASSESSMENT_ID as JSON."""
    with session.begin():
        try:
            acting = _acting_user(email, session)
            summary = statistics.for_assessment(acting, assessment_id, session=session)
            grades = statistics.grades_for_assessment(acting, assessment_id, session=session)
        except GradingError as e:
            raise click.ClickException(e.message) from e
    click.echo(json.dumps({"submissions": summary, "grades": grades}, indent=2))


@grading.command("dispatch")
@click.option("--limit", "-n", type=click.IntRange(min=1), default=None, help="Deliver at most this many")
def grading_dispatch(limit: int | None) -> None:
    """Deliver pending grade notifications."""
    result = notification.dispatch_pending() if limit is None else notification.dispatch_pending(limit=limit)
    click.echo(f"Delivered {len(result.delivered)} notifications, {len(result.failed)} failed")
