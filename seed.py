"""
Populate an empty database with an admin account and demo calendar data.

    python seed.py --username admin@example.com --password 'change-me'

Nothing is written when users already exist.
"""
import argparse
import logging
from datetime import date, datetime, timedelta

from config import settings
from database import SessionLocal, init_db
from dates import combine_date_time
from dependencies import get_password_hash
from storage import Storage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_EVENTS = [
    ("Project Deadline", "deadline", "05-01", "10:00",
     "Submit your final project report through the online portal.", "Online Submission Portal"),
    ("Math Quiz", "quiz", "05-03", "14:00",
     "Quiz on chapters 1-5 covering algebra and calculus.", "Room 101"),
    ("Guest Lecture", "other", "05-06", "11:30",
     "Guest lecture on advanced topics by Prof. Smith.", "Main Auditorium"),
    ("Physics Quiz", "quiz", "05-08", "09:00",
     "Quiz on physics fundamentals and applications.", "Room 202"),
    ("Essay Submission", "deadline", "05-12", "23:59",
     "Submit your essay on the assigned topic.", "Online Portal"),
    ("Study Group", "other", "05-15", "15:30",
     "Weekly study group for exam preparation.", "Library Study Room 3"),
    ("History Quiz", "quiz", "05-17", "14:15",
     "Quiz on world history from 1900-1950.", "Room 305"),
    ("Final Project", "deadline", "05-23", "09:00",
     "Submit your final project with all required components.", "Department Office"),
    ("Department Meeting", "other", "05-25", "13:00",
     "End of semester department meeting.", "Main Auditorium"),
    ("Final Exam", "quiz", "05-30", "10:00",
     "Comprehensive final exam covering all course material.", "Exam Hall A"),
]

# (event title, message, offset before the event)
DEMO_REMINDERS = [
    ("Final Project", "Reminder: Final Project submission is due soon!", timedelta(days=1)),
    ("Final Exam", "Don't forget your Final Exam tomorrow!", timedelta(days=1)),
    ("Department Meeting", "Department Meeting starts in 1 hour", timedelta(hours=1)),
]


def seed(storage: Storage, username: str, password: str, year: int) -> bool:
    if storage.count_users():
        logger.info("Users already exist, skipping seed.")
        return False

    admin = storage.create_user(username, get_password_hash(password), is_admin=True)
    logger.info(f"Created admin user {admin.username}")

    by_title = {}
    for title, category, month_day, time_str, description, location in DEMO_EVENTS:
        event = storage.create_event(
            {
                "title": title,
                "category": category,
                "date": f"{year}-{month_day}",
                "time": time_str,
                "description": description,
                "location": location,
            },
            created_by_id=admin.id,
        )
        by_title[title] = event
    logger.info(f"Created {len(by_title)} demo events")

    for title, message, before in DEMO_REMINDERS:
        event = by_title[title]
        starts_at = combine_date_time(event.date, event.time, settings.CALENDAR_TIMEZONE)
        notify_at: datetime = starts_at - before
        storage.create_notification(message=message, notify_at=notify_at, event_id=event.id)
    logger.info(f"Created {len(DEMO_REMINDERS)} demo notifications")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--year", type=int, default=date.today().year)
    args = parser.parse_args(argv)

    init_db()
    db = SessionLocal()
    try:
        seed(Storage(db), args.username, args.password, args.year)
    finally:
        db.close()


if __name__ == "__main__":
    main()
