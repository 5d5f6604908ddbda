# schemas.py
from pydantic import BaseModel, EmailStr, Field, constr
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    name: constr(min_length=1, max_length=100)
    email: EmailStr
    password: constr(min_length=1)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ReminderSchema(BaseModel):
    title: constr(min_length=1)
    description: constr(min_length=1)
    # stored as naive UTC
    reminder_time: datetime = Field(
        description="Due time. Values without a UTC offset are taken as UTC; "
        "values with one are converted to UTC."
    )
    email: EmailStr


class ReminderResponse(BaseModel):
    id: int
    title: str
    description: str
    email: str
    sent: bool
    start_time: str
    reminder_time: str

    class Config:
        from_attributes = True


class SearchQuery(BaseModel):
    search_term: str


class ExpenseLimit(BaseModel):
    title: constr(min_length=1)
    monthly_expense_limit: float


class ExpenseUpdate(BaseModel):
    current_spent: float


class ExpenseResponse(BaseModel):
    id: int
    title: str
    maximum_amount: float
    current_spent: float
    user_id: int
    percentage: Optional[float] = None

    class Config:
        from_attributes = True
