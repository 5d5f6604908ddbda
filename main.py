# main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
import uvicorn

from config import LOG_LEVEL, SCHEDULER_ENABLED
from router import router
from auth import auth_router
from database import init_db
from scheduler import NotificationScheduler

logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

notification_scheduler = NotificationScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if SCHEDULER_ENABLED:
        # Check reminders and expense limits every minute
        notification_scheduler.start()
    yield
    notification_scheduler.shutdown()


app = FastAPI(title="Reminder and Expense Tracker API", lifespan=lifespan)

app.include_router(router, prefix="/api", tags=["reminders", "expenses"])
app.include_router(auth_router, prefix="/auth", tags=["authentication"])


@app.get("/")
def home():
    return {"message": "Welcome to Reminder and Expense Tracker API"}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8080)
