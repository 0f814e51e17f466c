"""Command line interface for habitstreak."""

from __future__ import annotations

import functools
from datetime import datetime
from typing import Callable, TypeVar

import click

from .config import BaseConfig
from .errors import HabitStreakError
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from .logging_config import setup_logging
from .models import BadgeMetric, Habit, HabitType, User
from .services.badges import BadgeSpec
from .services.tracker import HabitTracker

F = TypeVar("F", bound=Callable[..., object])


class _AppState:
    """Lazily bootstrapped engine, session factory and tracker."""

    def __init__(self, config: BaseConfig):
        self.config = config
        self.engine, self.session_factory = bootstrap_database(config)
        self.tracker = HabitTracker(self.session_factory)


def _engine_errors(func: F) -> F:
    """Report engine errors as click errors carrying the error code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HabitStreakError as exc:
            raise click.ClickException(f"[{exc.code}] {exc}") from exc

    return wrapper  # type: ignore[return-value]


def _parse_badge(value: str) -> BadgeSpec:
    name, sep, threshold = value.rpartition(":")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME:THRESHOLD, got {value!r}")
    try:
        return BadgeSpec(name=name, condition_value=int(threshold))
    except ValueError as exc:
        raise click.BadParameter(f"threshold must be an integer in {value!r}") from exc


@click.group()
@click.option("--quiet", is_flag=True, default=False, help="Skip logging setup.")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """Track habit check-ins, streaks and badge progress."""

    config = BaseConfig()
    if not quiet:
        setup_logging(config)
    ctx.obj = _AppState(config)


@cli.command("init-db")
@click.pass_obj
def init_db(state: _AppState) -> None:
    """Create the database schema."""

    click.echo(f"Database ready: {state.config.DATABASE_URL}")


@cli.command("add-user")
@click.argument("username")
@click.pass_obj
def add_user(state: _AppState, username: str) -> None:
    """Create a user identity."""

    with state.session_factory() as session:
        try:
            user = SQLModelUserRepository(session).create(User(username=username.strip()))
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"user_id={user.id}")


@cli.command("add-habit")
@click.argument("name")
@click.option(
    "--type",
    "habit_type",
    type=click.Choice([t.value for t in HabitType]),
    default=HabitType.PRACTICE.value,
    show_default=True,
)
@click.option("--owner", type=int, default=None, help="Owner user id for a custom habit.")
@click.pass_obj
def add_habit(state: _AppState, name: str, habit_type: str, owner: int | None) -> None:
    """Create a habit template (system-wide unless --owner is given)."""

    with state.session_factory() as session:
        habit = SQLModelHabitRepository(session).create(
            Habit(name=name, habit_type=HabitType(habit_type), user_id=owner)
        )
        click.echo(f"habit_id={habit.id}")


@cli.command("update-habit")
@click.argument("user_id", type=int)
@click.argument("habit_id", type=int)
@click.option("--name", default=None)
@click.option("--type", "habit_type", type=click.Choice([t.value for t in HabitType]), default=None)
@click.pass_obj
@_engine_errors
def update_habit(
    state: _AppState, user_id: int, habit_id: int, name: str | None, habit_type: str | None
) -> None:
    """Rename or retype a custom habit owned by USER_ID."""

    habit = state.tracker.update_custom_habit(
        user_id,
        habit_id,
        name=name,
        habit_type=HabitType(habit_type) if habit_type else None,
    )
    click.echo(f"habit_id={habit.id} name={habit.name} type={habit.habit_type.value}")


@cli.command("delete-habit")
@click.argument("user_id", type=int)
@click.argument("habit_id", type=int)
@click.pass_obj
@_engine_errors
def delete_habit(state: _AppState, user_id: int, habit_id: int) -> None:
    """Delete a custom habit owned by USER_ID, with its registrations."""

    state.tracker.delete_custom_habit(user_id, habit_id)
    click.echo(f"Deleted habit {habit_id}")


@cli.command("register")
@click.argument("user_id", type=int)
@click.argument("habit_id", type=int)
@click.pass_obj
@_engine_errors
def register(state: _AppState, user_id: int, habit_id: int) -> None:
    """Adopt a habit for a user."""

    snapshot = state.tracker.register_habit(user_id, habit_id)
    click.echo(f"user_habit_id={snapshot.user_habit_id}")


@cli.command("create-badge-set")
@click.argument("name")
@click.option(
    "--badge",
    "badges",
    multiple=True,
    required=True,
    help="Badge as NAME:THRESHOLD, in sequence order. Repeatable.",
)
@click.option("--habit-id", type=int, default=None, help="Bind the set to one habit.")
@click.option(
    "--metric",
    type=click.Choice([m.value for m in BadgeMetric]),
    default=BadgeMetric.STREAK.value,
    show_default=True,
)
@click.pass_obj
@_engine_errors
def create_badge_set(
    state: _AppState, name: str, badges: tuple[str, ...], habit_id: int | None, metric: str
) -> None:
    """Create a system badge set."""

    specs = [_parse_badge(value) for value in badges]
    badge_set = state.tracker.create_badge_set(
        name, specs, habit_id=habit_id, metric=BadgeMetric(metric)
    )
    click.echo(f"badge_set_id={badge_set.id}")


@cli.command("check")
@click.argument("user_habit_id", type=int)
@click.option("--date", "on", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--unchecked", is_flag=True, default=False, help="Record the day as not checked.")
@click.pass_obj
@_engine_errors
def check(state: _AppState, user_habit_id: int, on: datetime | None, unchecked: bool) -> None:
    """Record a check-in for a user-habit."""

    result = state.tracker.check_habit(
        user_habit_id, on.date() if on else None, checked=not unchecked
    )
    click.echo(
        f"habit_log_id={result.log_id} streak={result.current_streak} "
        f"last_checked={result.last_checked_date}"
    )
    for event in result.achievements:
        click.echo(f"badge earned: {event.badge_name} (sequence {event.sequence})")


@cli.command("cancel")
@click.argument("habit_log_id", type=int)
@click.pass_obj
@_engine_errors
def cancel(state: _AppState, habit_log_id: int) -> None:
    """Cancel a check-in."""

    snapshot = state.tracker.cancel_check(habit_log_id)
    click.echo(f"streak={snapshot.current_streak} last_checked={snapshot.last_checked_date}")


@cli.command("streak")
@click.argument("user_habit_id", type=int)
@click.pass_obj
@_engine_errors
def streak(state: _AppState, user_habit_id: int) -> None:
    """Show the current streak."""

    snapshot = state.tracker.get_streak(user_habit_id)
    click.echo(f"streak={snapshot.current_streak} last_checked={snapshot.last_checked_date}")


@cli.command("badge-progress")
@click.argument("user_id", type=int)
@click.argument("user_habit_id", type=int)
@click.argument("badge_set_id", type=int)
@click.pass_obj
@_engine_errors
def badge_progress(state: _AppState, user_id: int, user_habit_id: int, badge_set_id: int) -> None:
    """Show progress toward the next badge of a set."""

    progress = state.tracker.get_badge_progress(user_id, user_habit_id, badge_set_id)
    if progress.completed:
        click.echo("completed")
        return
    click.echo(
        f"badge={progress.current_badge.name} value={progress.current_value} "
        f"remaining={progress.remaining} percent={progress.progress_percent}"
    )


@cli.command("advance")
@click.argument("user_badge_set_id", type=int)
@click.argument("value", type=click.IntRange(min=0))
@click.pass_obj
@_engine_errors
def advance(state: _AppState, user_badge_set_id: int, value: int) -> None:
    """Set the progress value of a custom badge cursor."""

    events = state.tracker.advance_badge_progress(user_badge_set_id, value)
    for event in events:
        click.echo(f"badge earned: {event.badge_name} (sequence {event.sequence})")
    if not events:
        click.echo("no new badges")


main = cli


if __name__ == "__main__":  # pragma: no cover
    main()
