from datetime import datetime, time, timedelta

from fastapi import Depends
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import EnrollmentStatus
from kobciye.db.models.database import (
    Appointments,
    Courses,
    CreditPurchases,
    Enrollments,
    User,
    UserProgress,
)
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.libs.formats.number import percent, round_half_up


class ReportService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def overview(self):
        total_users = await self.db.scalar(select(func.count(User.id))) or 0
        total_courses = await self.db.scalar(select(func.count(Courses.id))) or 0
        published_courses = await self.db.scalar(
            select(func.count(Courses.id)).where(Courses.is_published.is_(True))
        ) or 0

        by_status = dict(
            (
                await self.db.execute(
                    select(Enrollments.status, func.count(Enrollments.id)).group_by(
                        Enrollments.status
                    )
                )
            ).all()
        )

        purchases = (
            await self.db.execute(
                select(
                    func.count(CreditPurchases.id),
                    func.coalesce(func.sum(CreditPurchases.credits), 0),
                    func.coalesce(func.sum(CreditPurchases.amount), 0),
                ).where(CreditPurchases.status == "completed")
            )
        ).one()

        completed_videos = await self.db.scalar(
            select(func.count(UserProgress.id)).where(UserProgress.is_completed.is_(True))
        ) or 0
        pending_bookings = await self.db.scalar(
            select(func.count(Appointments.id)).where(Appointments.status == "pending")
        ) or 0

        return {
            "users": total_users,
            "courses": total_courses,
            "published_courses": published_courses,
            "enrollments": {s.value: by_status.get(s.value, 0) for s in EnrollmentStatus},
            "completed_purchases": purchases[0],
            "credits_sold": int(purchases[1]),
            "revenue": int(purchases[2]),
            "completed_videos": completed_videos,
            "pending_bookings": pending_bookings,
        }

    async def analytics(self, days: int = 30, top: int = 10):
        """Enrollment analytics over the last `days` days (today included)."""
        today = get_now().date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, time.min)

        total_users = await self.db.scalar(select(func.count(User.id))) or 0
        published_courses = await self.db.scalar(
            select(func.count(Courses.id)).where(Courses.is_published.is_(True))
        ) or 0
        total_enrollments = await self.db.scalar(select(func.count(Enrollments.id))) or 0
        completed_enrollments = await self.db.scalar(
            select(func.count(Enrollments.id)).where(
                Enrollments.status == EnrollmentStatus.COMPLETED.value
            )
        ) or 0
        active_learners = await self.db.scalar(
            select(func.count(func.distinct(Enrollments.user_id))).where(
                Enrollments.enrolled_at >= since
            )
        ) or 0

        # per-course performance, busiest first
        completions = func.sum(
            case((Enrollments.status == EnrollmentStatus.COMPLETED.value, 1), else_=0)
        )
        enrollment_count = func.count(Enrollments.id)
        course_rows = (
            await self.db.execute(
                select(
                    Courses.id,
                    Courses.title,
                    enrollment_count.label("enrollments"),
                    func.coalesce(completions, 0).label("completions"),
                    func.coalesce(func.avg(Enrollments.progress), 0).label("avg_progress"),
                )
                .select_from(Courses)
                .outerjoin(Enrollments, Enrollments.course_id == Courses.id)
                .group_by(Courses.id, Courses.title)
                .order_by(enrollment_count.desc(), Courses.title)
                .limit(top)
            )
        ).all()

        # daily series, zero-filled
        daily = {
            (first_day + timedelta(days=i)).isoformat(): {"enrollments": 0, "completions": 0}
            for i in range(days)
        }
        for column, key in (
            (Enrollments.enrolled_at, "enrollments"),
            (Enrollments.completed_at, "completions"),
        ):
            day = func.date(column)
            rows = await self.db.execute(
                select(day, func.count(Enrollments.id))
                .where(column.is_not(None), column >= since)
                .group_by(day)
            )
            for bucket, count in rows.all():
                label = str(bucket)[:10]
                if label in daily:
                    daily[label][key] = count

        categories = (
            await self.db.execute(
                select(Courses.category, func.count(Courses.id))
                .group_by(Courses.category)
                .order_by(func.count(Courses.id).desc(), Courses.category)
            )
        ).all()

        return {
            "days": days,
            "summary": {
                "users": total_users,
                "published_courses": published_courses,
                "enrollments": total_enrollments,
                "completion_rate": percent(completed_enrollments, total_enrollments),
                "active_learners": active_learners,
            },
            "courses": [
                {
                    "id": row.id,
                    "title": row.title,
                    "enrollments": row.enrollments,
                    "completions": int(row.completions),
                    "completion_rate": percent(int(row.completions), row.enrollments),
                    "avg_progress": round_half_up(float(row.avg_progress)),
                }
                for row in course_rows
            ],
            "daily": [{"date": date, **counts} for date, counts in daily.items()],
            "categories": [{"name": name, "value": count} for name, count in categories],
        }
