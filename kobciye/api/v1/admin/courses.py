import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from kobciye.core.deps import AuthorizationService
from kobciye.schemas.admin.course import (
    CourseCreate,
    CourseUpdate,
    PlaylistCreate,
    PlaylistUpdate,
    VideoCreate,
    VideoUpdate,
)
from kobciye.schemas.user.learning import CourseOut
from kobciye.services.admin.course import CourseAdminService

router = APIRouter(prefix="/admin", tags=["Admin Courses"])


# ==============================
# COURSES
# ==============================


@router.get("/courses")
async def list_courses(
    is_published: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.list_courses(is_published, search, page, size)


@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    schema: CourseCreate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.create_course(schema)


@router.patch("/courses/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: uuid.UUID,
    schema: CourseUpdate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.update_course(course_id, schema)


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: uuid.UUID,
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.delete_course(course_id)


# ==============================
# PLAYLISTS
# ==============================


@router.get("/courses/{course_id}/playlists")
async def list_playlists(
    course_id: uuid.UUID,
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.list_playlists(course_id)


@router.post("/playlists", status_code=status.HTTP_201_CREATED)
async def create_playlist(
    schema: PlaylistCreate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.create_playlist(schema)


@router.patch("/playlists/{playlist_id}")
async def update_playlist(
    playlist_id: uuid.UUID,
    schema: PlaylistUpdate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.update_playlist(playlist_id, schema)


@router.delete("/playlists/{playlist_id}")
async def delete_playlist(
    playlist_id: uuid.UUID,
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.delete_playlist(playlist_id)


# ==============================
# VIDEOS
# ==============================


@router.get("/playlists/{playlist_id}/videos")
async def list_videos(
    playlist_id: uuid.UUID,
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.list_videos(playlist_id)


@router.post("/videos", status_code=status.HTTP_201_CREATED)
async def create_video(
    schema: VideoCreate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.create_video(schema)


@router.patch("/videos/{video_id}")
async def update_video(
    video_id: uuid.UUID,
    schema: VideoUpdate = Body(),
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.update_video(video_id, schema)


@router.delete("/videos/{video_id}")
async def delete_video(
    video_id: uuid.UUID,
    service: CourseAdminService = Depends(CourseAdminService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_admin()
    return await service.delete_video(video_id)
