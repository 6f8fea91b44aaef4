"""Academic groups: membership, units, feed posts and shared resources."""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from ...database.blob_store import LocalBlobStore
from ...database.operations import DatabaseOperations
from ...functions.callable import AuthContext
from ...services.resources import delete_resource, upload_resource
from ..auth import get_current_user
from ..deps import get_blob_store, get_db
from ..schemas import GroupIn, JoinGroupIn, PostIn, UnitIn

router = APIRouter(prefix="/api/groups", tags=["groups"])


def _display_name(db: DatabaseOperations, user: AuthContext) -> str:
    profile = db.get_user_profile(user.uid)
    if profile and profile["displayName"]:
        return profile["displayName"]
    return user.token.get("name") or "Unknown"


@router.get("")
def list_my_groups(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_user_groups(user.uid)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_group(
    body: GroupIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.create_group(user.uid, body.name, body.code, body.lecturerName)


@router.post("/join")
def join_group(
    body: JoinGroupIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.join_group(user.uid, body.joinCode)


@router.get("/{group_id}")
def get_group(
    group_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.require_member(group_id, user.uid)


# ==================== Units ====================

@router.get("/{group_id}/units")
def list_units(
    group_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.list_units(user.uid, group_id)


@router.post("/{group_id}/units", status_code=status.HTTP_201_CREATED)
def create_unit(
    group_id: int,
    body: UnitIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.add_unit(
        user.uid,
        group_id,
        name=body.name,
        code=body.code,
        lecturer_name=body.lecturerName,
        schedule=[slot.model_dump() for slot in body.schedule],
    )


# ==================== Posts ====================

@router.get("/{group_id}/posts")
def list_posts(
    group_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_posts(user.uid, group_id)


@router.post("/{group_id}/posts", status_code=status.HTTP_201_CREATED)
def create_post(
    group_id: int,
    body: PostIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.create_post(
        user.uid,
        group_id,
        author_name=_display_name(db, user),
        content=body.content,
        unit_id=body.unitId,
        is_assessment=body.isAssessment,
        event_date=body.eventDate,
    )


@router.get("/{group_id}/assessments")
def list_assessments(
    group_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_assessments(user.uid, group_id)


# ==================== Resources ====================

@router.get("/{group_id}/resources")
def list_resources(
    group_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_resources(user.uid, group_id)


@router.post("/{group_id}/resources", status_code=status.HTTP_201_CREATED)
async def create_resource(
    group_id: int,
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(default=""),
    category: str = Form(default="other"),
    unitId: str = Form(default=""),
    unitName: str = Form(default="General"),
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
    blobs: LocalBlobStore = Depends(get_blob_store),
) -> dict:
    content = await file.read()
    uploader_name = await run_in_threadpool(_display_name, db, user)
    return await run_in_threadpool(
        upload_resource,
        db,
        blobs,
        user.uid,
        group_id,
        file.filename or "file",
        file.content_type or "application/octet-stream",
        content,
        title,
        uploaded_by_name=uploader_name,
        unit_id=unitId,
        unit_name=unitName,
        description=description,
        category=category,
    )


@router.delete("/{group_id}/resources/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_resource(
    group_id: int,
    resource_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
    blobs: LocalBlobStore = Depends(get_blob_store),
) -> None:
    delete_resource(db, blobs, user.uid, group_id, resource_id)
