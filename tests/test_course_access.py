import uuid

from kobciye.core.enum import AppRole


async def test_unknown_course_is_not_found(api):
    user = await api.register()
    resp = await api.rpc("check_course_access", {"course_id": str(uuid.uuid4())}, user)

    assert resp.status_code == 200
    assert resp.json() == {
        "allowed": False,
        "reason": "course_not_found",
        "required_credits": None,
        "course_title": None,
    }


async def test_unpublished_course_denied_even_for_admins(api):
    course = await api.seed_course(published=False)
    admin = await api.register(roles=[AppRole.ADMIN])

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, admin)).json()

    assert body["allowed"] is False
    assert body["reason"] == "course_not_published"
    assert body["course_title"] == "Intro to Python"


async def test_admin_bypasses_enrollment(api):
    course = await api.seed_course()
    for role in (AppRole.ADMIN, AppRole.SUPER_ADMIN):
        admin = await api.register(roles=[role])
        body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, admin)).json()
        assert body == {
            "allowed": True,
            "reason": "admin_access",
            "required_credits": None,
            "course_title": None,
        }


async def test_instructor_is_not_an_admin(api):
    course = await api.seed_course(price=30)
    instructor = await api.register(roles=[AppRole.INSTRUCTOR])

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, instructor)).json()

    assert body["allowed"] is False
    assert body["reason"] == "not_enrolled"


async def test_enrolled_student_is_allowed(api):
    course = await api.seed_course()
    user = await api.register()
    await api.enroll_directly(user["id"], course["id"])

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, user)).json()

    assert body["allowed"] is True
    assert body["reason"] == "enrolled"


async def test_completed_enrollment_still_grants_access(api):
    course = await api.seed_course()
    user = await api.register()
    await api.enroll_directly(user["id"], course["id"], status="completed")

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, user)).json()

    assert body["reason"] == "enrolled"


async def test_cancelled_enrollment_does_not_grant_access(api):
    course = await api.seed_course(price=45)
    user = await api.register()
    await api.enroll_directly(user["id"], course["id"], status="cancelled")

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, user)).json()

    assert body["allowed"] is False
    assert body["reason"] == "not_enrolled"
    assert body["required_credits"] == 45


async def test_not_enrolled_reports_price_and_title(api):
    course = await api.seed_course(price=60)
    user = await api.register()

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])}, user)).json()

    assert body == {
        "allowed": False,
        "reason": "not_enrolled",
        "required_credits": 60,
        "course_title": "Intro to Python",
    }


async def test_anonymous_caller_is_not_enrolled(api):
    course = await api.seed_course(price=10)

    body = (await api.rpc("check_course_access", {"course_id": str(course["id"])})).json()

    assert body["allowed"] is False
    assert body["reason"] == "not_enrolled"
    assert body["required_credits"] == 10
