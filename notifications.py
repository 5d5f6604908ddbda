# notifications.py
"""Expense threshold checks and the due-reminder sweep run on every scheduler tick.

Session work runs in a worker thread so the event loop stays free. Both
scans read their records in one session, dispatch for every matched record
concurrently and wait for all of that work before returning a summary.
Nothing raised by a single record escapes the scan.
"""
import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from config import NOTIFY_TO
from database import SessionLocal, Expense, Reminder, utcnow
from notifier import dispatch

logger = logging.getLogger(__name__)


@dataclass
class ExpenseCheckResult:
    checked: int = 0
    over_limit: int = 0
    dispatched: int = 0
    failed: int = 0
    missing_user: int = 0


@dataclass
class SweepResult:
    due: int = 0
    dispatched: int = 0
    failed: int = 0
    marked_sent: int = 0
    write_failed: int = 0


def format_amount(value):
    value = float(value)
    return int(value) if value.is_integer() else value


def format_reminder_time(value):
    """Render like ``Monday, January 1, 2024 10:00 AM``."""
    hour = value.hour % 12 or 12
    return f"{value:%A, %B} {value.day}, {value.year} {hour}:{value:%M %p}"


def expense_message(user_name, expense_title, current_spent, maximum_amount):
    return (
        f"Dear {user_name}, your limit for {expense_title} is out of limit. "
        f"Your current expense is {format_amount(current_spent)}, "
        f"and your limit is {format_amount(maximum_amount)}."
    )


def reminder_message(title, reminder_time):
    return f"You have a reminder for event: {title} at {format_reminder_time(reminder_time)}"


async def _safe_dispatch(dispatcher, destination, body):
    try:
        return bool(await dispatcher(destination, body))
    except Exception:
        logger.exception("Dispatcher raised while sending: %s", body)
        return False


def _load_expense_alerts(session_factory, result):
    messages = []
    with session_factory() as db:
        expenses = db.query(Expense).options(joinedload(Expense.user)).all()
        result.checked = len(expenses)
        for expense in expenses:
            if expense.current_spent < expense.maximum_amount:
                continue
            result.over_limit += 1
            if expense.user is None or not expense.user.name:
                result.missing_user += 1
                logger.error("User not found for expense: %s", expense.id)
                continue
            messages.append(
                expense_message(
                    expense.user.name,
                    expense.title,
                    expense.current_spent,
                    expense.maximum_amount,
                )
            )
    return messages


async def check_expenses(session_factory=SessionLocal, dispatcher=None, destination=None):
    dispatcher = dispatcher or dispatch
    destination = NOTIFY_TO if destination is None else destination
    result = ExpenseCheckResult()

    messages = await asyncio.to_thread(_load_expense_alerts, session_factory, result)

    if not result.checked:
        logger.info("No expense data found.")
        return result

    outcomes = await asyncio.gather(
        *(_safe_dispatch(dispatcher, destination, body) for body in messages)
    )
    result.dispatched = sum(1 for ok in outcomes if ok)
    result.failed = len(outcomes) - result.dispatched
    if result.failed:
        logger.error("%d expense notification(s) failed to send", result.failed)
    return result


def _load_due_reminders(session_factory, now):
    with session_factory() as db:
        due = (
            db.query(Reminder)
            .filter(Reminder.reminder_time <= now, Reminder.sent.is_(False))
            .all()
        )
        return [(r.id, r.title, r.reminder_time) for r in due]


def _mark_sent(session_factory, reminder_ids):
    """Flag each reminder in its own session; returns one bool per id."""
    written = []
    for reminder_id in reminder_ids:
        try:
            with session_factory() as db:
                reminder = db.get(Reminder, reminder_id)
                if reminder is None:
                    logger.warning(
                        "Reminder %s disappeared before it was marked sent", reminder_id
                    )
                    written.append(False)
                    continue
                reminder.sent = True
                db.commit()
        except SQLAlchemyError:
            logger.exception("Failed to mark reminder %s as sent", reminder_id)
            written.append(False)
            continue
        written.append(True)
    return written


async def sweep_due_reminders(session_factory=SessionLocal, dispatcher=None, destination=None, now=None):
    dispatcher = dispatcher or dispatch
    destination = NOTIFY_TO if destination is None else destination
    now = now or utcnow()
    result = SweepResult()

    pending = await asyncio.to_thread(_load_due_reminders, session_factory, now)

    result.due = len(pending)
    if not pending:
        return result

    delivered = await asyncio.gather(
        *(
            _safe_dispatch(dispatcher, destination, reminder_message(title, reminder_time))
            for _, title, reminder_time in pending
        )
    )
    # sent is written whatever the dispatch outcome
    written = await asyncio.to_thread(
        _mark_sent, session_factory, [reminder_id for reminder_id, _, _ in pending]
    )

    result.dispatched = sum(1 for ok in delivered if ok)
    result.failed = len(delivered) - result.dispatched
    result.marked_sent = sum(1 for ok in written if ok)
    result.write_failed = len(written) - result.marked_sent

    logger.info(
        "Reminder sweep: %d due, %d sent, %d failed",
        result.due,
        result.dispatched,
        result.failed,
    )
    return result
