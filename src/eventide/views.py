"""Pure derived views over in-memory collections.

Every function here is deterministic: it takes rows (as returned by the API
or the row store, so dates may be ``date``/``datetime`` objects or ISO
strings) plus an explicit *today* where time matters, and returns new
lists/dicts without mutating its input.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

INBOX = "Inbox"

Row = Mapping[str, Any]


def _as_date(value: Any) -> date | None:
    """Coerce a date, datetime or ISO string to a calendar ``date``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def _as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _sort_key_naive(value: Any) -> datetime:
    """Sort key that compares aware and naive datetimes on wall-clock time."""
    dt = _as_datetime(value)
    if dt is None:
        return datetime.max
    return dt.replace(tzinfo=None)


def date_key(value: Any) -> str | None:
    """Return the ``YYYY-MM-DD`` key for *value*, or None when absent."""
    day = _as_date(value)
    return day.isoformat() if day is not None else None


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return str(left) == str(right)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def upcoming_events(events: Iterable[Row], today: date, days: int = 7) -> list[Row]:
    """Return events from *today* through ``today + days`` inclusive.

    Indefinite events are always included and sort after dated ones;
    dated events are ordered by time.
    """
    end = today + timedelta(days=days)
    dated: list[Row] = []
    indefinite: list[Row] = []
    for event in events:
        if event.get("is_indefinite") or event.get("datetime") is None:
            indefinite.append(event)
            continue
        day = _as_date(event["datetime"])
        if today <= day <= end:
            dated.append(event)
    dated.sort(key=lambda e: _sort_key_naive(e["datetime"]))
    return dated + indefinite


def events_by_date(events: Iterable[Row]) -> dict[str, list[Row]]:
    """Group dated events by ``YYYY-MM-DD``; indefinite events are skipped."""
    grouped: dict[str, list[Row]] = {}
    for event in events:
        if event.get("is_indefinite"):
            continue
        key = date_key(event.get("datetime"))
        if key is None:
            continue
        grouped.setdefault(key, []).append(event)
    return grouped


def month_grid_days(year: int, month: int, first_weekday: int = calendar.SUNDAY) -> list[date]:
    """Return every day shown on a month calendar grid.

    The grid starts on the week containing the 1st and ends on the week
    containing the last day, so its length is always a multiple of seven.
    *first_weekday* uses :mod:`calendar` numbering (Monday is 0).
    """
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    start = first - timedelta(days=(first.weekday() - first_weekday) % 7)
    end = last + timedelta(days=(first_weekday - 1 - last.weekday()) % 7)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


# ---------------------------------------------------------------------------
# Todos and projects
# ---------------------------------------------------------------------------


def todos_due_today(todos: Iterable[Row], today: date) -> list[Row]:
    return [t for t in todos if not t.get("completed") and _as_date(t.get("due_date")) == today]


def inbox_project_ids(projects: Iterable[Row]) -> set[str]:
    """Return the ids of the caller's personal Inbox project(s)."""
    return {
        str(p["project_id"])
        for p in projects
        if p.get("name") == INBOX and p.get("collab_id") is None
    }


def inbox_todos(todos: Iterable[Row], projects: Iterable[Row]) -> list[Row]:
    inbox_ids = inbox_project_ids(projects)
    return [t for t in todos if str(t.get("project_id")) in inbox_ids]


def project_todos(todos: Iterable[Row], project_id: Any) -> tuple[list[Row], list[Row]]:
    """Split a project's todos into ``(open, completed)``."""
    open_todos: list[Row] = []
    completed: list[Row] = []
    for todo in todos:
        if not _same_id(todo.get("project_id"), project_id):
            continue
        (completed if todo.get("completed") else open_todos).append(todo)
    return open_todos, completed


@dataclass
class TodoAgenda:
    """Todos arranged for the agenda view."""

    upcoming: dict[str, list[Row]] = field(default_factory=dict)
    anytime: list[Row] = field(default_factory=list)
    completed: list[Row] = field(default_factory=list)


def todo_agenda(todos: Iterable[Row], today: date) -> TodoAgenda:
    """Group todos into upcoming (by due date, sorted), anytime and completed.

    Open todos due before *today* appear in none of the groups.
    """
    agenda = TodoAgenda()
    upcoming: dict[str, list[Row]] = {}
    for todo in todos:
        if todo.get("completed"):
            agenda.completed.append(todo)
            continue
        due = _as_date(todo.get("due_date"))
        if due is None:
            agenda.anytime.append(todo)
        elif due >= today:
            upcoming.setdefault(due.isoformat(), []).append(todo)
    agenda.upcoming = {key: upcoming[key] for key in sorted(upcoming)}
    return agenda


def sort_projects(projects: Sequence[Row]) -> list[Row]:
    """Return projects with ``Inbox`` first, otherwise keeping their order."""
    return sorted(projects, key=lambda p: 0 if p.get("name") == INBOX else 1)


def personal_projects(projects: Iterable[Row]) -> list[Row]:
    return [p for p in projects if p.get("collab_id") is None]


# ---------------------------------------------------------------------------
# Notes and collaboration filters
# ---------------------------------------------------------------------------


def notes_for_notebook(notes: Iterable[Row], notebook_id: Any) -> list[Row]:
    """Return a notebook's notes, most recently updated first."""
    selected = [n for n in notes if _same_id(n.get("notebook_id"), notebook_id)]
    return sorted(
        selected,
        key=lambda n: _sort_key_naive(n.get("updated_at") or n.get("created_at")),
        reverse=True,
    )


def for_collaboration(items: Iterable[Row], collab_id: Any) -> list[Row]:
    """Return the rows that belong to *collab_id* (``None`` selects personal rows)."""
    return [item for item in items if _same_id(item.get("collab_id"), collab_id)]
