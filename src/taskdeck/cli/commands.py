# src/taskdeck/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..config import NotificationPreferences
from ..core.session import Session
from ..errors import MutationError, TaskdeckError
from ..tasks.buckets import BUCKET_ORDER, BUCKET_TITLES, classify
from ..tasks.reminders import upcoming_reminders
from ..tasks.task_models import Bucket, Task, TaskStatus

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(slots=True)
class CommandContext:
    session: Session
    prefs: NotificationPreferences = field(default_factory=NotificationPreferences)
    clock: Callable[[], datetime] = _local_now


CommandHandler = Callable[[CommandContext, list[str]], Awaitable[str]]


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, ctx: CommandContext, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(ctx, args)
        except MutationError as e:
            return f"Change to task {e.task_id} failed and was rolled back: {e.cause}"
        except TaskdeckError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_task(task: Task) -> str:
    due = task.due_date.astimezone().strftime("%Y-%m-%d %H:%M")
    return f"[{task.id}] {task.title} ({task.priority.value}, due {due})"


def render_board(board: dict[Bucket, list[Task]]) -> str:
    lines: list[str] = []
    for bucket in BUCKET_ORDER:
        tasks = board.get(bucket, [])
        lines.append(f"{BUCKET_TITLES[bucket]} ({len(tasks)})")
        for task in tasks:
            lines.append(f"  {_fmt_task(task)}")
    return "\n".join(lines)


def _parse_due(args: list[str]) -> datetime:
    """YYYY-MM-DD [HH:MM] in local time; date-only means end of that day."""
    raw = " ".join(args)
    for fmt, end_of_day in (("%Y-%m-%d %H:%M", False), ("%Y-%m-%d", True)):
        try:
            value = datetime.strptime(raw, fmt)
        except ValueError:
            continue
        if end_of_day:
            value = value.replace(hour=23, minute=59)
        return value.astimezone()
    raise ValueError(raw)


async def cmd_help(ctx: CommandContext, args: list[str]) -> str:
    return registry.build_help()


async def cmd_board(ctx: CommandContext, args: list[str]) -> str:
    return render_board(ctx.session.coordinator.board(ctx.clock()))


async def cmd_move(ctx: CommandContext, args: list[str]) -> str:
    """/move <task_id> <dueToday|pending|completed|overdue>"""
    if len(args) != 2:
        return "Usage: /move <task_id> <dueToday|pending|completed|overdue>"
    task_id, bucket = args
    try:
        target = Bucket(bucket)
    except ValueError:
        return f"Unknown bucket: {bucket}. Use one of: {', '.join(b.value for b in BUCKET_ORDER)}."

    task = await ctx.session.coordinator.move(task_id, target)
    return f"Task {task.id} is now in {BUCKET_TITLES[classify(task, ctx.clock())]}."


async def _set_status(ctx: CommandContext, args: list[str], status: TaskStatus) -> str:
    if len(args) != 1:
        return f"Usage: /{'done' if status == TaskStatus.COMPLETED else 'undo'} <task_id>"
    task = await ctx.session.coordinator.set_status(args[0], status)
    return f"Task {task.id} marked as {task.status.value}."


async def cmd_done(ctx: CommandContext, args: list[str]) -> str:
    return await _set_status(ctx, args, TaskStatus.COMPLETED)


async def cmd_undo(ctx: CommandContext, args: list[str]) -> str:
    return await _set_status(ctx, args, TaskStatus.PENDING)


async def cmd_due(ctx: CommandContext, args: list[str]) -> str:
    """/due <task_id> <YYYY-MM-DD> [HH:MM]"""
    if len(args) < 2:
        return "Usage: /due <task_id> <YYYY-MM-DD> [HH:MM]"
    try:
        due = _parse_due(args[1:])
    except ValueError:
        return "Date must look like 2024-05-31 or 2024-05-31 18:00."
    task = await ctx.session.coordinator.reschedule(args[0], due)
    return f"Task {task.id} rescheduled: {_fmt_task(task)}"


async def cmd_add(ctx: CommandContext, args: list[str]) -> str:
    """/add <YYYY-MM-DD> <low|medium|high> <title...>"""
    if len(args) < 3:
        return "Usage: /add <YYYY-MM-DD> <low|medium|high> <title...>"
    try:
        due = _parse_due(args[:1])
    except ValueError:
        return "Date must look like 2024-05-31."
    task = await ctx.session.coordinator.create(
        {"title": " ".join(args[2:]), "priority": args[1].lower(), "dueDate": due}
    )
    return f"Created {_fmt_task(task)}"


async def cmd_delete(ctx: CommandContext, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <task_id>"
    await ctx.session.coordinator.delete(args[0])
    return f"Task {args[0]} deleted."


async def cmd_refresh(ctx: CommandContext, args: list[str]) -> str:
    await ctx.session.sync()
    return (
        f"Refreshed: {len(ctx.session.coordinator.tasks())} tasks, "
        f"{ctx.session.notifications.unread_count} unread notifications."
    )


async def cmd_notes(ctx: CommandContext, args: list[str]) -> str:
    items = ctx.session.notifications.notifications()
    if not items:
        return "No notifications."
    lines = [f"Notifications ({ctx.session.notifications.unread_count} unread):"]
    for n in items:
        mark = " " if n.read else "*"
        ts = n.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
        lines.append(f" {mark} [{n.id}] {ts} {n.type.value}: {n.message}")
    return "\n".join(lines)


async def cmd_read(ctx: CommandContext, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /read <notification_id>"
    try:
        changed = await ctx.session.notifications.mark_read(args[0])
    except KeyError:
        return f"No notification with id {args[0]}."
    if not changed:
        return f"Notification {args[0]} was already read."
    return f"Notification {args[0]} marked as read ({ctx.session.notifications.unread_count} unread)."


async def cmd_upcoming(ctx: CommandContext, args: list[str]) -> str:
    if not ctx.prefs.enabled:
        return "Reminders are disabled."
    tasks = upcoming_reminders(ctx.session.coordinator.tasks(), ctx.clock(), ctx.prefs)
    if not tasks:
        return f"Nothing due in the next {ctx.prefs.reminder_hours}h."
    lines = [f"Due within {ctx.prefs.reminder_hours}h or overdue:"]
    for task in tasks:
        lines.append(f"  {_fmt_task(task)}")
    return "\n".join(lines)


async def cmd_status(ctx: CommandContext, args: list[str]) -> str:
    session = ctx.session
    err = session.last_error or session.channel.last_error
    return (
        "Status:\n"
        f"  Realtime: {session.channel.state.value}\n"
        f"  Tasks: {len(session.coordinator.tasks())}\n"
        f"  Unread notifications: {session.notifications.unread_count}\n"
        f"  Last error: {err if err else '-'}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("board", cmd_board, help_text="Show the task board by bucket.", aliases=["b"])
registry.register("move", cmd_move, help_text="Move a task: /move <id> <dueToday|pending|completed|overdue>.")
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("undo", cmd_undo, help_text="Mark a task pending again: /undo <id>.")
registry.register("due", cmd_due, help_text="Reschedule: /due <id> <YYYY-MM-DD> [HH:MM].")
registry.register("add", cmd_add, help_text="Create a task: /add <YYYY-MM-DD> <priority> <title>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("refresh", cmd_refresh, help_text="Refetch tasks and notifications.")
registry.register("notes", cmd_notes, help_text="List notifications (* = unread).", aliases=["n"])
registry.register("read", cmd_read, help_text="Mark a notification read: /read <id>.")
registry.register("upcoming", cmd_upcoming, help_text="Tasks worth a reminder right now.")
registry.register("status", cmd_status, help_text="Show realtime/cache status.")
