"""Demo data seeder: one organization with tasks due soon and follow-up leads."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.config import settings
from app.models import (
    Lead,
    LeadSettings,
    Organization,
    Task,
    TaskNotification,
    User,
)
from app.services.task_notification_scheduler import build_notification_plan

# (title, hours until due)
TASKS = [
    ("Replace water heater - 14 Elm St", 30),
    ("Quarterly HVAC inspection - Riverside Clinic", 8),
    ("Send revised quote to Parker Plumbing", 2),
    ("Order replacement compressor", 0.5),
]

# (name, email, phone, service, interval days, days until due)
LEADS = [
    ("Dana Whitfield", "dana@example.com", "+15551230001", "roof repair", 2, -1),
    ("Marco Ruiz", None, "+15551230002", "gutter cleaning", 1, 0),
    ("Priya Shah", "priya@example.com", None, "solar panel install", 7, 3),
]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    now = datetime.now(timezone.utc)

    async with session_maker() as session:
        print("Seeding demo notification data")

        await session.execute(
            text(
                "TRUNCATE TABLE task_notifications, tasks, lead_settings, leads, "
                "users, organizations CASCADE"
            )
        )

        org = Organization(
            organization_id=uuid.uuid4(),
            name="Pro Field Demo Co",
            email="office@profield-demo.com",
        )
        session.add(org)
        session.add(
            LeadSettings(
                organization_id=org.organization_id,
                email_subject="Following up on your {service} request",
                email_template=(
                    "Hi {name},\n\nThanks for reaching out to {company} about "
                    "{service}. Reply to this email to book a visit."
                ),
                sms_template="Hi {name}, {company} here about your {service} request.",
            )
        )

        tech = User(
            user_id=uuid.uuid4(),
            organization_id=org.organization_id,
            username="tech.alvarez",
            email="alvarez@profield-demo.com",
            phone="+15551239999",
        )
        session.add(tech)
        await session.flush()

        reminders = 0
        for title, hours in TASKS:
            task = Task(
                task_id=uuid.uuid4(),
                organization_id=org.organization_id,
                title=title,
                due_date=now + timedelta(hours=hours),
                assigned_to_id=tech.user_id,
            )
            session.add(task)
            await session.flush()
            plan = build_notification_plan(
                task_id=task.task_id,
                user_id=tech.user_id,
                organization_id=org.organization_id,
                due_date=task.due_date,
                offsets_hours=settings.TASK_NOTIFICATION_OFFSETS_HOURS,
                now=now,
            )
            session.add_all(TaskNotification(**row) for row in plan)
            reminders += len(plan)
        print(f"  {len(TASKS)} tasks, {reminders} pending reminders")

        for name, email, phone, service, interval, due_in_days in LEADS:
            session.add(
                Lead(
                    organization_id=org.organization_id,
                    name=name,
                    email=email,
                    phone=phone,
                    service_description=service,
                    automatic_follow_up_enabled=True,
                    automatic_follow_up_interval=interval,
                    next_automatic_follow_up=now + timedelta(days=due_in_days),
                )
            )
        print(f"  {len(LEADS)} leads with automatic follow-up enabled")

        await session.commit()

    await engine.dispose()
    print("Seed complete")


if __name__ == "__main__":
    asyncio.run(seed())
