"""Chorekeeper CLI - recurring chores, appointments and reminders."""

import json
import logging
import sys
import time
from datetime import date, datetime, timedelta

import click

from .config import load_config
from .core.errors import (
    AddResult,
    ChorekeeperError,
    ItemNotFound,
)
from .core.items import ItemKind, SchedulableItem
from .core.recurrence import RecurrenceRule, occurrences
from .workflows import Engine, build_daemon, build_engine

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]
SHORT_ID = 8


def _engine() -> Engine:
    try:
        return build_engine(load_config())
    except ChorekeeperError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _resolve(engine: Engine, item_id: str) -> SchedulableItem:
    """Find an item by full id or unique id prefix."""
    matches = [i for i in engine.lifecycle.items() if i.id.startswith(item_id)]
    if len(matches) != 1:
        raise ItemNotFound(item_id)
    return matches[0]


def _item_line(item: SchedulableItem) -> str:
    marker = "x" if item.is_completed else " "
    extra = ""
    if item.recurrence != RecurrenceRule.NONE:
        extra += f" ({item.recurrence.value})"
    if item.is_follow_up:
        extra += f" [follow-up of {item.related_parent_id[:SHORT_ID]}]"
    return f"[{marker}] {item.id[:SHORT_ID]}  {item.due_at.strftime('%Y-%m-%d %H:%M')}  {item.title}{extra}"


def _show_items(items: list[SchedulableItem], as_json: bool, empty_msg: str) -> None:
    if as_json:
        click.echo(json.dumps([i.to_dict() for i in items], indent=2))
        return
    if not items:
        click.echo(empty_msg)
        return
    for item in items:
        click.echo(_item_line(item))


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.version_option()
def main():
    """Chorekeeper - recurring chores and reminders."""
    pass


@main.command()
@click.argument("title")
@click.option("--due", "-d", required=True, type=click.DateTime(formats=DATE_FORMATS),
              help="Due date/time (YYYY-MM-DD [HH:MM])")
@click.option("--recurrence", "-r", default="none",
              type=click.Choice([r.value for r in RecurrenceRule], case_sensitive=False))
@click.option("--offset", "-o", type=int, default=None,
              help="Reminder minutes before due (default from config)")
@click.option("--kind", "-k", default="task",
              type=click.Choice([ItemKind.TASK.value, ItemKind.APPOINTMENT.value]))
@click.option("--notes", "-n", default="", help="Notes, used as the reminder text")
def add(title: str, due: datetime, recurrence: str, offset: int | None, kind: str, notes: str):
    """Add a task or appointment."""
    engine = _engine()
    minutes = engine.config.default_reminder_offset if offset is None else offset
    try:
        item = SchedulableItem(
            title=title,
            due_at=due,
            recurrence=RecurrenceRule.parse(recurrence),
            reminder_offset=timedelta(minutes=minutes),
            notes=notes,
            kind=ItemKind(kind),
        )
        result, _ = engine.add(item)
    except (ValueError, ChorekeeperError) as e:
        _fail(e)

    if result == AddResult.DUPLICATE_ITEM:
        click.echo(f"'{item.title}' already exists on {item.due_at.date()}.")
        return
    click.echo(f"Added {item.id[:SHORT_ID]}: {item.title} (due {item.due_at.strftime('%Y-%m-%d %H:%M')})")


@main.command("list")
@click.option("--overdue", "mode", flag_value="overdue", help="Only overdue items")
@click.option("--completed", "mode", flag_value="completed", help="Only completed items")
@click.option("--today", "mode", flag_value="today", help="Items due today")
@click.option("--all", "mode", flag_value="all", help="Every item")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_items(mode: str | None, as_json: bool):
    """List upcoming items."""
    engine = _engine()
    match mode:
        case "overdue":
            _show_items(engine.lifecycle.overdue(), as_json, "Nothing overdue.")
        case "completed":
            _show_items(engine.lifecycle.completed(), as_json, "Nothing completed yet.")
        case "today":
            _show_items(engine.agenda(date.today()), as_json, "Nothing due today.")
        case "all":
            _show_items(engine.lifecycle.items(), as_json, "No items.")
        case _:
            _show_items(engine.lifecycle.upcoming(), as_json, "Nothing upcoming.")


@main.command()
@click.argument("item_id")
def complete(item_id: str):
    """Mark an item completed."""
    engine = _engine()
    try:
        outcome = engine.complete(_resolve(engine, item_id).id)
    except ChorekeeperError as e:
        _fail(e)

    completion = outcome.completion
    if completion.already_completed:
        click.echo(f"'{completion.item.title}' was already completed.")
        return
    click.echo(f"Completed '{completion.item.title}'.")
    if completion.spawned is not None:
        click.echo(f"Next: {_item_line(completion.spawned)}")
    elif completion.regeneration == AddResult.DUPLICATE_ITEM:
        click.echo("Next occurrence already exists.")
    if outcome.follow_up is not None:
        click.echo(f"Follow-up: {_item_line(outcome.follow_up.item)}")


@main.command("undo-complete")
@click.argument("item_id")
def undo_complete(item_id: str):
    """Mark a completed item active again."""
    engine = _engine()
    try:
        item = engine.undo_complete(_resolve(engine, item_id).id)
    except ChorekeeperError as e:
        _fail(e)
    click.echo(f"'{item.title}' is active again.")


@main.command()
@click.argument("item_id")
def delete(item_id: str):
    """Delete an item and its follow-ups."""
    engine = _engine()
    try:
        item = engine.delete(_resolve(engine, item_id).id, undoable=False)
    except ChorekeeperError as e:
        _fail(e)
    click.echo(f"Deleted '{item.title}'.")


@main.command("follow-up")
@click.argument("item_id")
@click.option("--days", type=int, default=None, help="Days after the parent (default from config)")
def follow_up(item_id: str, days: int | None):
    """Create a follow-up for a completed item."""
    engine = _engine()
    offset_days = engine.config.follow_up_days if days is None else days
    try:
        parent = _resolve(engine, item_id)
        created = engine.follow_ups.schedule_follow_up(parent, offset_days)
    except (ValueError, ChorekeeperError) as e:
        _fail(e)
    click.echo(f"Follow-up: {_item_line(created.item)}")


@main.command("cancel-follow-ups")
@click.argument("item_id")
def cancel_follow_ups(item_id: str):
    """Remove every follow-up tied to an item."""
    engine = _engine()
    try:
        removed = engine.follow_ups.cancel_follow_ups(_resolve(engine, item_id))
    except ChorekeeperError as e:
        _fail(e)
    click.echo(f"Removed {len(removed)} follow-up(s).")


@main.command()
@click.argument("rule", type=click.Choice([r.value for r in RecurrenceRule if r != RecurrenceRule.NONE],
                                          case_sensitive=False))
@click.option("--from", "start", type=click.DateTime(formats=DATE_FORMATS), default=None,
              help="Start date (default now)")
@click.option("--count", "-c", type=int, default=5, help="Number of occurrences")
def preview(rule: str, start: datetime | None, count: int):
    """Show the next occurrences of a recurrence rule."""
    start = start or datetime.now().replace(second=0, microsecond=0)
    for when in occurrences(RecurrenceRule.parse(rule), start, count):
        click.echo(when.strftime("%a %Y-%m-%d %H:%M"))


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def run(debug: bool):
    """Run the reminder daemon."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
    config = load_config()
    try:
        engine, dispatcher = build_daemon(config)
    except ChorekeeperError as e:
        _fail(e)

    if not engine.reminders.session.wait(timeout=30):
        click.echo("Error: notifications not authorized. Check TELEGRAM_BOT_TOKEN and "
                   "TELEGRAM_ALLOWED_USERS in chorekeeper.conf", err=True)
        dispatcher.shutdown()
        sys.exit(1)

    engine.sync_reminders()
    dispatcher.add_interval_job(engine.sync_reminders, config.sync_interval, "sync_reminders")
    click.echo(f"Watching {config.store_path} for reminders")
    click.echo("Press Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopped.")
    finally:
        dispatcher.shutdown()


@main.command()
@click.option("--limit", "-l", type=int, default=20)
def pending(limit: int):
    """Show what the store expects to remind about next."""
    engine = _engine()
    now = datetime.now()
    shown = 0
    for item in engine.lifecycle.upcoming(now):
        if shown >= limit:
            break
        try:
            trigger = item.trigger_at()
        except OverflowError:
            continue
        status = "due" if trigger > now else "past"
        click.echo(f"{trigger.strftime('%Y-%m-%d %H:%M')}  [{status}]  {item.title}")
        shown += 1
    if not shown:
        click.echo("No reminders pending.")


if __name__ == "__main__":
    main()
