import uuid

import httpx
import pytest

from kobciye.client.api import BackendError, KobciyeClient
from kobciye.client.player import CoursePlayer
from kobciye.client.roles import RoleResolver
from kobciye.core.enum import AccessReason, AppRole


@pytest.fixture
def enrolled_course(backend, learner_id):
    course_id, video_ids = backend.add_course(videos=3)
    backend.enrollments.add((learner_id, course_id))
    return uuid.UUID(course_id), [uuid.UUID(v) for v in video_ids]


async def test_open_resumes_at_first_unfinished_video(signed_in, backend, learner_id, enrolled_course):
    course_id, video_ids = enrolled_course
    backend.complete_video(learner_id, str(video_ids[0]))
    player = CoursePlayer(signed_in)

    access = await player.open(course_id)

    assert access.allowed is True
    assert player.current.id == video_ids[1]
    assert player.completed_count == 1
    assert player.progress.completed_videos == 1
    assert player.progress.progress_percentage == 33


async def test_open_denied_course_loads_nothing(signed_in, backend):
    course_id, _ = backend.add_course()
    player = CoursePlayer(signed_in)

    access = await player.open(uuid.UUID(course_id))

    assert access.reason is AccessReason.NOT_ENROLLED
    assert player.curriculum is None
    assert player.current is None


async def test_navigation_stays_in_bounds(signed_in, enrolled_course):
    course_id, video_ids = enrolled_course
    player = CoursePlayer(signed_in)
    await player.open(course_id)

    assert player.current.id == video_ids[0]
    assert player.previous() is None
    assert player.next().id == video_ids[1]
    assert player.next().id == video_ids[2]
    assert player.next() is None
    assert player.select(video_ids[0]).id == video_ids[0]
    with pytest.raises(KeyError):
        player.select(uuid.uuid4())


async def test_completion_is_one_way_and_toasts_once(signed_in, enrolled_course, toasts):
    course_id, video_ids = enrolled_course
    player = CoursePlayer(signed_in)
    await player.open(course_id)

    await player.mark_completed(video_ids[0])
    await player.mark_completed(video_ids[0])

    assert player.is_video_completed(video_ids[0])
    assert [t.title for t in toasts].count("Video completed") == 1


async def test_tracker_completion_marks_the_video(signed_in, backend, enrolled_course):
    course_id, video_ids = enrolled_course
    player = CoursePlayer(signed_in)
    await player.open(course_id)

    tracker = player.tracker_for_current()
    await tracker.save_progress(570, 600)

    assert player.is_video_completed(video_ids[0])
    assert player.progress.completed_videos == 1


async def test_locked_video_gets_no_tracker(signed_in, backend):
    course_id, video_ids = backend.add_course(free_first=True)
    player = CoursePlayer(signed_in)
    # preview a course the learner has not bought: only the free lesson is playable
    player.curriculum = await signed_in.client.get_curriculum(uuid.UUID(course_id))
    player.videos = [v for p in player.curriculum.playlists for v in p.videos]

    player.select(uuid.UUID(video_ids[0]))
    assert player.tracker_for_current() is not None
    player.select(uuid.UUID(video_ids[1]))
    assert player.tracker_for_current() is None


async def test_role_resolver_falls_back_to_student(signed_in, backend):
    backend.failures["/me/roles"] = 500

    assert await RoleResolver(signed_in.client).resolve() is AppRole.STUDENT


async def test_sign_in_resolves_effective_role(context, backend):
    backend.add_user("hodan@kobciye.so", roles=["student", "instructor"])

    session = await context.sign_in("hodan@kobciye.so", "secret123")

    assert session.effective_role is AppRole.INSTRUCTOR
    assert context.user is session


async def test_bad_credentials_raise_backend_error(context, backend):
    backend.add_user("someone@kobciye.so")

    with pytest.raises(BackendError) as err:
        await context.sign_in("someone@kobciye.so", "wrong")

    assert err.value.status_code == 401
    assert err.value.message == "Invalid email or password"
    assert context.session is None


async def test_malformed_payload_is_a_backend_error(signed_in, backend):
    backend.malformed.add("/me/profile")

    with pytest.raises(BackendError):
        await signed_in.client.get_profile()


async def test_client_sends_bearer_token_and_clears_it_on_logout(backend, learner_id):
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend)) as http:
        client = KobciyeClient(http=http, base_url="http://kobciye.test/")
        await client.login("learner@kobciye.so", "secret123")
        assert client.is_authenticated

        profile = await client.get_profile()
        assert str(profile.user_id) == learner_id

        await client.logout()
        assert not client.is_authenticated
        with pytest.raises(BackendError) as err:
            await client.get_profile()
        assert err.value.status_code == 401


async def test_starting_playback_counts_a_play(signed_in, backend, learner_id, enrolled_course):
    course_id, video_ids = enrolled_course
    player = CoursePlayer(signed_in)
    await player.open(course_id)

    assert await player.record_play() == 1
    assert await player.record_play() == 2
    assert backend.calls_to("/rpc/record_video_play") == [{"video_id": str(video_ids[0])}] * 2
    assert backend.progress[(learner_id, str(video_ids[0]))]["play_count"] == 2


async def test_play_count_failures_do_not_stop_playback(signed_in, backend, enrolled_course):
    course_id, _ = enrolled_course
    player = CoursePlayer(signed_in)
    await player.open(course_id)
    backend.failures["/rpc/record_video_play"] = 500

    assert await player.record_play() is None
    assert player.current is not None


async def test_locked_video_play_is_not_recorded(signed_in, backend):
    course_id, video_ids = backend.add_course(free_first=True)
    player = CoursePlayer(signed_in)
    player.curriculum = await signed_in.client.get_curriculum(uuid.UUID(course_id))
    player.videos = [v for p in player.curriculum.playlists for v in p.videos]
    player.select(uuid.UUID(video_ids[1]))

    assert await player.record_play() is None
    assert backend.calls_to("/rpc/record_video_play") == []
