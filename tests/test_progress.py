from sqlalchemy import select

from kobciye.core.enum import AppRole
from kobciye.db.models.database import UserProgress


async def _save(api, user, video_id, pct, position=0):
    resp = await api.rpc(
        "update_video_progress",
        {
            "video_id": str(video_id),
            "watched_percentage": pct,
            "last_position_seconds": position,
        },
        user,
    )
    return resp


async def _saved(api, user, video_id):
    resp = await api.client.get(f"/api/v1/me/progress/{video_id}", headers=user["headers"])
    assert resp.status_code == 200
    return resp.json()


async def _enrolled_user(api, **course_kwargs):
    course = await api.seed_course(**course_kwargs)
    user = await api.register()
    await api.enroll_directly(user["id"], course["id"])
    return course, user


async def test_first_save_creates_the_row(api):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    assert await _saved(api, user, video_id) is None

    body = (await _save(api, user, video_id, 7, 41)).json()
    assert body == {"success": True, "is_completed": False, "watched_percentage": 7}

    saved = await _saved(api, user, video_id)
    assert saved["watched_percentage"] == 7
    assert saved["last_position_seconds"] == 41
    assert saved["play_count"] == 1
    assert saved["is_completed"] is False


async def test_percentage_never_decreases_but_position_follows(api):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    await _save(api, user, video_id, 60, 360)
    body = (await _save(api, user, video_id, 20, 120)).json()

    assert body["watched_percentage"] == 60
    saved = await _saved(api, user, video_id)
    assert saved["watched_percentage"] == 60
    assert saved["last_position_seconds"] == 120


async def test_threshold_completes_and_completion_latches(api):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    below = (await _save(api, user, video_id, 89, 534)).json()
    at = (await _save(api, user, video_id, 90, 540)).json()
    rewatch = (await _save(api, user, video_id, 5, 30)).json()

    assert below["is_completed"] is False
    assert at["is_completed"] is True
    assert rewatch["is_completed"] is True
    assert (await _saved(api, user, video_id))["is_completed"] is True


async def test_out_of_range_values_are_clamped(api):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    body = (await _save(api, user, video_id, 250, -5)).json()

    assert body["watched_percentage"] == 100
    saved = await _saved(api, user, video_id)
    assert saved["last_position_seconds"] == 0


async def test_threshold_comes_from_platform_settings(api):
    admin = await api.register(roles=[AppRole.ADMIN])
    resp = await api.client.put(
        "/api/v1/admin/settings/courses",
        json={"value": {"auto_complete_threshold": 50}},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    course, user = await _enrolled_user(api)

    body = (await _save(api, user, course["video_ids"][0], 50, 300)).json()

    assert body["is_completed"] is True


async def test_course_progress_and_enrollment_auto_complete(api):
    course, user = await _enrolled_user(api, videos=2)
    first, second = course["video_ids"]
    payload = {"course_id": str(course["id"])}

    await _save(api, user, first, 95, 570)
    half = (await api.rpc("get_course_progress", payload, user)).json()
    assert half == {
        "total_videos": 2,
        "completed_videos": 1,
        "progress_percentage": 50,
        "is_completed": False,
    }
    mine = (await api.client.get("/api/v1/me/enrollments", headers=user["headers"])).json()
    assert mine[0]["progress"] == 50
    assert mine[0]["status"] == "active"

    await _save(api, user, second, 100, 600)
    done = (await api.rpc("get_course_progress", payload, user)).json()
    assert done["progress_percentage"] == 100
    assert done["is_completed"] is True

    mine = (await api.client.get("/api/v1/me/enrollments", headers=user["headers"])).json()
    assert mine[0]["status"] == "completed"
    assert mine[0]["completed_at"] is not None

    notes = (await api.client.get("/api/v1/notifications", headers=user["headers"])).json()
    assert "Course completed" in [n["title"] for n in notes["items"]]


async def test_progress_without_access_is_forbidden(api):
    course = await api.seed_course()
    stranger = await api.register()

    resp = await _save(api, stranger, course["video_ids"][0], 50, 300)

    assert resp.status_code == 403


async def test_free_preview_video_can_be_tracked_without_enrollment(api):
    course = await api.seed_course(free_first=True)
    visitor = await api.register()

    free = await _save(api, visitor, course["video_ids"][0], 40, 240)
    paid = await _save(api, visitor, course["video_ids"][1], 40, 240)

    assert free.status_code == 200
    assert paid.status_code == 403


async def test_unknown_video_is_not_found(api):
    user = await api.register()
    resp = await _save(api, user, "00000000-0000-0000-0000-000000000000", 10)
    assert resp.status_code == 404


async def test_record_play_counts_every_start(api):
    course, user = await _enrolled_user(api)
    video_id = str(course["video_ids"][0])

    first = (await api.rpc("record_video_play", {"video_id": video_id}, user)).json()
    second = (await api.rpc("record_video_play", {"video_id": video_id}, user)).json()

    assert first == {"success": True, "play_count": 1}
    assert second == {"success": True, "play_count": 2}


async def test_course_progress_for_unknown_course(api):
    user = await api.register()
    resp = await api.rpc(
        "get_course_progress", {"course_id": "00000000-0000-0000-0000-000000000000"}, user
    )
    assert resp.status_code == 404


async def test_concurrent_first_save_updates_the_row_it_lost_to(api, interleave):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    async def pause_save_wins():
        async with api.session_factory() as session:
            session.add(
                UserProgress(
                    user_id=user["id"],
                    video_id=video_id,
                    watched_percentage=5,
                    last_position_seconds=30,
                    play_count=1,
                )
            )
            await session.commit()

    race = interleave(UserProgress, pause_save_wins)
    resp = await _save(api, user, video_id, 7, 41)

    assert race["fired"] is True
    assert resp.status_code == 200, resp.text
    assert resp.json()["watched_percentage"] == 7
    async with api.session_factory() as session:
        rows = (
            await session.scalars(select(UserProgress).where(UserProgress.user_id == user["id"]))
        ).all()
    assert len(rows) == 1
    assert (rows[0].watched_percentage, rows[0].last_position_seconds) == (7, 41)


async def test_play_racing_the_first_save_counts_as_a_replay(api, interleave):
    course, user = await _enrolled_user(api)
    video_id = course["video_ids"][0]

    async def first_save_wins():
        async with api.session_factory() as session:
            session.add(
                UserProgress(
                    user_id=user["id"],
                    video_id=video_id,
                    watched_percentage=7,
                    last_position_seconds=41,
                    play_count=1,
                )
            )
            await session.commit()

    interleave(UserProgress, first_save_wins)
    resp = await api.rpc("record_video_play", {"video_id": str(video_id)}, user)

    assert resp.status_code == 200, resp.text
    assert resp.json()["play_count"] == 2
    saved = await _saved(api, user, video_id)
    assert saved["watched_percentage"] == 7
