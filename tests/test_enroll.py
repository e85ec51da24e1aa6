import uuid

from sqlalchemy import func, select, update

from kobciye.core.enum import AppRole
from kobciye.db.models.database import Enrollments, Profiles


async def _enroll(api, user, course_id):
    resp = await api.rpc("enroll_with_credits", {"course_id": str(course_id)}, user)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _students_count(api, course_id):
    resp = await api.client.get(f"/api/v1/courses/{course_id}")
    return resp.json()["students_count"]


async def test_enroll_debits_price_and_grants_access(api):
    course = await api.seed_course(price=60)
    user = await api.register(credits=100)

    body = await _enroll(api, user, course["id"])

    assert body["success"] is True
    assert body["credits_remaining"] == 40
    assert uuid.UUID(body["enrollment_id"])
    assert await api.credits_of(user["id"]) == 40
    assert await _students_count(api, course["id"]) == 1

    access = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, user)).json()
    assert access["reason"] == "enrolled"


async def test_second_enroll_is_rejected_without_second_debit(api):
    course = await api.seed_course(price=60)
    user = await api.register(credits=200)

    first = await _enroll(api, user, course["id"])
    second = await _enroll(api, user, course["id"])

    assert first["success"] is True
    assert second == {
        "success": False,
        "error": "Already enrolled in this course",
        "enrollment_id": None,
        "credits_remaining": None,
        "required_credits": None,
        "credits_available": None,
    }
    assert await api.credits_of(user["id"]) == 140
    assert await _students_count(api, course["id"]) == 1


async def test_insufficient_credits_leave_no_trace(api):
    course = await api.seed_course(price=60)
    user = await api.register(credits=59)

    body = await _enroll(api, user, course["id"])

    assert body["success"] is False
    assert body["error"] == "Insufficient credits"
    assert body["required_credits"] == 60
    assert body["credits_available"] == 59
    assert await api.credits_of(user["id"]) == 59

    mine = await api.client.get("/api/v1/me/enrollments", headers=user["headers"])
    assert mine.json() == []


async def test_exact_balance_is_enough(api):
    course = await api.seed_course(price=60)
    user = await api.register(credits=60)

    body = await _enroll(api, user, course["id"])

    assert body["success"] is True
    assert body["credits_remaining"] == 0


async def test_free_course_enrolls_with_empty_wallet(api):
    course = await api.seed_course(price=0)
    user = await api.register()

    body = await _enroll(api, user, course["id"])

    assert body["success"] is True
    assert body["credits_remaining"] == 0


async def test_unknown_and_unpublished_courses(api):
    draft = await api.seed_course(published=False)
    user = await api.register(credits=100)

    missing = await _enroll(api, user, uuid.uuid4())
    unpublished = await _enroll(api, user, draft["id"])

    assert missing["error"] == "Course not found"
    assert unpublished["error"] == "Course is not available"
    assert await api.credits_of(user["id"]) == 100


async def test_enroll_requires_sign_in(api):
    course = await api.seed_course()

    resp = await api.rpc("enroll_with_credits", {"course_id": str(course["id"])})

    assert resp.status_code == 401


async def test_re_enroll_after_cancellation_charges_again(api):
    course = await api.seed_course(price=30)
    user = await api.register(credits=100)
    await api.enroll_directly(user["id"], course["id"], status="cancelled")

    body = await _enroll(api, user, course["id"])

    assert body["success"] is True
    assert body["credits_remaining"] == 70


async def test_enrollment_notification_and_listing(api):
    course = await api.seed_course(price=10, title="Somali Grammar")
    user = await api.register(credits=10)
    await _enroll(api, user, course["id"])

    mine = (await api.client.get("/api/v1/me/enrollments", headers=user["headers"])).json()
    assert len(mine) == 1
    assert mine[0]["course_title"] == "Somali Grammar"
    assert mine[0]["status"] == "active"
    assert mine[0]["progress"] == 0

    notes = (await api.client.get("/api/v1/notifications", headers=user["headers"])).json()
    assert notes["unread"] == 1
    assert notes["items"][0]["title"] == "Enrollment confirmed"
    assert "Somali Grammar" in notes["items"][0]["message"]


async def test_enrollment_notification_can_be_switched_off(api):
    admin = await api.register(roles=[AppRole.ADMIN])
    await api.client.put(
        "/api/v1/admin/settings/notifications",
        json={"value": {"enrollment_notifications": False}},
        headers=admin["headers"],
    )
    course = await api.seed_course(price=0)
    user = await api.register()

    await _enroll(api, user, course["id"])

    notes = (await api.client.get("/api/v1/notifications", headers=user["headers"])).json()
    assert notes["total"] == 0


async def test_lost_race_on_the_live_enrollment_index_charges_once(api, interleave):
    course = await api.seed_course(price=60)
    user = await api.register(credits=200)

    async def other_tap_wins():
        async with api.session_factory() as session:
            session.add(Enrollments(user_id=user["id"], course_id=course["id"], status="active"))
            await session.execute(
                update(Profiles)
                .where(Profiles.user_id == user["id"])
                .values(credits=Profiles.credits - 60)
            )
            await session.commit()

    race = interleave(Enrollments, other_tap_wins)
    body = await _enroll(api, user, course["id"])

    assert race["fired"] is True
    assert body["success"] is False
    assert body["error"] == "Already enrolled in this course"
    assert await api.credits_of(user["id"]) == 140
    async with api.session_factory() as session:
        live = await session.scalar(
            select(func.count(Enrollments.id)).where(Enrollments.user_id == user["id"])
        )
    assert live == 1
