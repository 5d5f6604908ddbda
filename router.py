from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime, timezone
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db, Reminder, Expense, User, utcnow
from schemas import (
    ReminderSchema,
    ReminderResponse,
    SearchQuery,
    ExpenseLimit,
    ExpenseUpdate,
    ExpenseResponse,
)
from auth import get_current_user


router = APIRouter()

SCHEDULE_TIME_FORMAT = "%Y-%m-%d %I:%M %p"


def render_reminder(reminder: Reminder) -> ReminderResponse:
    return ReminderResponse(
        id=reminder.id,
        title=reminder.title,
        description=reminder.description,
        email=reminder.email,
        sent=reminder.sent,
        start_time=reminder.start_time.strftime(SCHEDULE_TIME_FORMAT),
        reminder_time=reminder.reminder_time.strftime(SCHEDULE_TIME_FORMAT),
    )


def expense_percentage(expense: Expense) -> float:
    if expense.current_spent and expense.maximum_amount:
        return round(expense.current_spent / expense.maximum_amount * 100, 2)
    return 0.0


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def get_reminder_or_404(reminder_id: int, db: Session) -> Reminder:
    reminder = db.get(Reminder, reminder_id)
    if not reminder:
        raise HTTPException(status_code=404, detail="Event not found")
    return reminder


def get_expense_or_404(expense_id: int, db: Session, user: User) -> Expense:
    expense = (
        db.query(Expense)
        .filter(Expense.id == expense_id, Expense.user_id == user.id)
        .first()
    )
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


# Reminders are not owned by a user; any authenticated user can manage them.
@router.post(
    "/reminders", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED
)
async def set_reminder(
    reminder: ReminderSchema,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_reminder = Reminder(
        title=reminder.title,
        description=reminder.description,
        start_time=utcnow(),
        reminder_time=naive_utc(reminder.reminder_time),
        email=reminder.email,
        sent=False,
    )
    db.add(db_reminder)
    db.commit()
    db.refresh(db_reminder)
    return render_reminder(db_reminder)


@router.get("/reminders", response_model=list[ReminderResponse])
async def get_events(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    reminders = db.query(Reminder).order_by(Reminder.reminder_time).all()
    return [render_reminder(r) for r in reminders]


@router.get("/reminders/{reminder_id}", response_model=ReminderResponse)
async def get_event(
    reminder_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return render_reminder(get_reminder_or_404(reminder_id, db))


@router.put("/reminders/{reminder_id}", response_model=ReminderResponse)
async def update_event(
    reminder_id: int,
    reminder: ReminderSchema,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_reminder = get_reminder_or_404(reminder_id, db)
    db_reminder.title = reminder.title
    db_reminder.description = reminder.description
    db_reminder.reminder_time = naive_utc(reminder.reminder_time)
    db_reminder.email = reminder.email
    db.commit()
    db.refresh(db_reminder)
    return render_reminder(db_reminder)


@router.delete("/reminders/{reminder_id}")
async def delete_event(
    reminder_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.delete(get_reminder_or_404(reminder_id, db))
    db.commit()
    return {"message": "Event deleted successfully"}


@router.post("/reminders/search", response_model=list[ReminderResponse])
async def search_events(
    query: SearchQuery,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pattern = f"%{query.search_term}%"
    reminders = (
        db.query(Reminder)
        .filter(or_(Reminder.title.ilike(pattern), Reminder.description.ilike(pattern)))
        .all()
    )
    if not reminders:
        raise HTTPException(
            status_code=404, detail="No events found for the search term."
        )
    return [render_reminder(r) for r in reminders]


@router.get("/expenses", response_model=list[ExpenseResponse])
async def expense_keeper(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    expenses = db.query(Expense).filter(Expense.user_id == current_user.id).all()
    response = []
    for expense in expenses:
        item = ExpenseResponse.model_validate(expense)
        item.percentage = expense_percentage(expense)
        response.append(item)
    return response


@router.post(
    "/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED
)
async def set_monthly_expense_limit(
    expense_limit: ExpenseLimit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if expense_limit.monthly_expense_limit <= 0:
        raise HTTPException(status_code=400, detail="Limit must be greater than zero")

    db_expense = Expense(
        title=expense_limit.title,
        maximum_amount=expense_limit.monthly_expense_limit,
        current_spent=0,
        user_id=current_user.id,
    )
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)
    item = ExpenseResponse.model_validate(db_expense)
    item.percentage = expense_percentage(db_expense)
    return item


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    update: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = get_expense_or_404(expense_id, db, current_user)
    # spending is overwritten, not accumulated
    expense.current_spent = update.current_spent
    db.commit()
    db.refresh(expense)
    item = ExpenseResponse.model_validate(expense)
    item.percentage = expense_percentage(expense)
    return item


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.delete(get_expense_or_404(expense_id, db, current_user))
    db.commit()
    return {"message": "Expense deleted successfully"}
