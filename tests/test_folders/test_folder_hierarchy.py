# tests/test_folders/test_folder_hierarchy.py
from contextlib import asynccontextmanager
from uuid import uuid4

import pytest
from sqlalchemy import Delete, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError, UpstreamFailureError
from app.core.redis_client import RedisClient
from app.db.models.folder import Folder
from app.db.models.video import Video
from app.services.folders import FolderHierarchyManager, folder_path, lock_name

pytestmark = pytest.mark.anyio


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

async def _tree(make_user, make_workspace, make_folder):
    """A → B → C plus a sibling root D."""
    owner = await make_user()
    ws = await make_workspace(owner)
    a = await make_folder(ws, "A")
    b = await make_folder(ws, "B", a)
    c = await make_folder(ws, "C", b)
    d = await make_folder(ws, "D")
    return ws, a, b, c, d


class BusyRedis:
    """Lock that is always held by someone else."""

    def __init__(self):
        self.requested = []

    @asynccontextmanager
    async def lock(self, name, *, timeout=10, blocking_timeout=3, sleep=0.05):
        self.requested.append(name)
        raise TimeoutError(f"Failed to acquire lock: {name}")
        yield  # pragma: no cover


# ─────────────────────────────────────────────────────────────────────────────
# Create / paths
# ─────────────────────────────────────────────────────────────────────────────

def test_folder_path_embeds_ids():
    fid = uuid4()
    assert folder_path(fid, None) == f"/{fid}"
    assert folder_path(fid, "/parent") == f"/parent/{fid}"
    assert lock_name(fid) == f"lock:folders:workspace:{fid}"


async def test_create_builds_materialized_path(db_session, make_user, make_workspace):
    owner = await make_user()
    ws = await make_workspace(owner)
    manager = FolderHierarchyManager(db_session)

    root = await manager.create(name="Projects", workspace_id=ws.id, created_by=owner.id)
    child = await manager.create(name="2026", workspace_id=ws.id, parent_folder_id=root.id)

    assert root.path == f"/{root.id}"
    assert child.path == f"/{root.id}/{child.id}"
    assert [f.id for f in await manager.list_root(ws.id)] == [root.id]
    assert [f.id for f in await manager.list_children(root.id)] == [child.id]


async def test_create_rejects_parent_from_another_workspace(db_session, make_user, make_workspace, make_folder):
    owner = await make_user()
    ws_one = await make_workspace(owner)
    ws_two = await make_workspace(owner)
    foreign = await make_folder(ws_two, "Elsewhere")

    with pytest.raises(InvalidStateError) as exc_info:
        await FolderHierarchyManager(db_session).create(name="x", workspace_id=ws_one.id, parent_folder_id=foreign.id)
    assert exc_info.value.reason == "invalid-parent"


async def test_get_unknown_folder_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        await FolderHierarchyManager(db_session).get(uuid4())


# ─────────────────────────────────────────────────────────────────────────────
# Move
# ─────────────────────────────────────────────────────────────────────────────

async def test_move_rewrites_subtree_paths(db_session, redis_client, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    manager = FolderHierarchyManager(db_session)

    moved = await manager.move(b.id, d.id)

    assert moved.parent_folder_id == d.id
    assert moved.path == f"/{d.id}/{b.id}"
    refreshed_c = await db_session.get(Folder, c.id)
    await db_session.refresh(refreshed_c)
    assert refreshed_c.path == f"/{d.id}/{b.id}/{c.id}"
    # lock released afterwards
    assert await redis_client.get(lock_name(ws.id)) is None


async def test_move_to_root(db_session, redis_client, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)

    moved = await FolderHierarchyManager(db_session).move(b.id, None)

    assert moved.parent_folder_id is None
    assert moved.path == f"/{b.id}"


async def test_move_into_own_descendant_is_a_cycle(db_session, redis_client, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    a_id, c_id = a.id, c.id

    with pytest.raises(InvalidStateError) as exc_info:
        await FolderHierarchyManager(db_session).move(a_id, c_id)
    assert exc_info.value.reason == "cycle-detected"

    parent = await db_session.scalar(select(Folder.parent_folder_id).where(Folder.id == a_id))
    assert parent is None


async def test_move_onto_itself_is_rejected_before_locking(db_session, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    busy = BusyRedis()

    with pytest.raises(InvalidStateError) as exc_info:
        await FolderHierarchyManager(db_session, redis=busy).move(b.id, b.id)
    assert exc_info.value.reason == "cannot-be-own-parent"
    assert busy.requested == []


async def test_move_under_foreign_workspace_parent_is_invalid(db_session, redis_client, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    other_ws = await make_workspace(await make_user())
    foreign = await make_folder(other_ws, "Foreign")

    with pytest.raises(InvalidStateError) as exc_info:
        await FolderHierarchyManager(db_session).move(b.id, foreign.id)
    assert exc_info.value.reason == "invalid-parent"


async def test_move_reports_busy_tree_when_lock_is_held(db_session, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    busy = BusyRedis()

    with pytest.raises(ConflictError) as exc_info:
        await FolderHierarchyManager(db_session, redis=busy).move(b.id, d.id)

    assert exc_info.value.code == "folder-tree-busy"
    assert exc_info.value.status_code == 409
    assert busy.requested == [lock_name(ws.id)]


async def test_move_without_redis_is_retryable_upstream_failure(db_session, make_user, make_workspace, make_folder):
    _, _, b, _, d = await _tree(make_user, make_workspace, make_folder)
    offline = RedisClient("redis://localhost:6379/0")

    with pytest.raises(UpstreamFailureError) as exc_info:
        await FolderHierarchyManager(db_session, redis=offline).move(b.id, d.id)

    assert exc_info.value.status_code == 503
    assert exc_info.value.extra == {"retryable": True}


async def test_interleaved_moves_never_create_a_cycle(session_factory, redis_client, make_user, make_workspace, make_folder):
    """Two sessions race to put X under Y and Y under X; the second must see the first."""
    owner = await make_user()
    ws = await make_workspace(owner)
    x = await make_folder(ws, "X")
    y = await make_folder(ws, "Y")

    async with session_factory() as first, session_factory() as second:
        await FolderHierarchyManager(first).move(x.id, y.id)
        with pytest.raises(InvalidStateError) as exc_info:
            await FolderHierarchyManager(second).move(y.id, x.id)

    assert exc_info.value.reason == "cycle-detected"


# ─────────────────────────────────────────────────────────────────────────────
# Cascade delete
# ─────────────────────────────────────────────────────────────────────────────

async def test_delete_cascade_removes_subtree_and_keeps_videos(
    db_session, redis_client, make_user, make_workspace, make_folder, make_video
):
    owner = await make_user()
    ws = await make_workspace(owner)
    a = await make_folder(ws, "A")
    b = await make_folder(ws, "B", a)
    c = await make_folder(ws, "C", b)
    keep = await make_folder(ws, "Keep")
    v1 = await make_video(owner, workspace=ws, folder=b)
    v2 = await make_video(owner, workspace=ws, folder=c)
    v3 = await make_video(owner, workspace=ws, folder=keep)

    result = await FolderHierarchyManager(db_session).delete_cascade(a.id)

    assert set(result.deleted_folder_ids) == {a.id, b.id, c.id}
    assert result.deleted_folder_ids[0] == a.id
    assert result.detached_video_count == 2

    remaining = (await db_session.execute(select(Folder.id))).scalars().all()
    assert remaining == [keep.id]

    rows = await db_session.execute(select(Video.id, Video.folder_id))
    folders_by_video = {vid: fid for vid, fid in rows.all()}
    assert folders_by_video == {v1.id: None, v2.id: None, v3.id: keep.id}


async def test_delete_cascade_failure_changes_nothing(
    db_session, redis_client, make_user, make_workspace, make_folder, make_video, monkeypatch
):
    owner = await make_user()
    ws = await make_workspace(owner)
    a = await make_folder(ws, "A")
    b = await make_folder(ws, "B", a)
    video = await make_video(owner, workspace=ws, folder=b)
    ws_id, a_id, b_id, video_id = ws.id, a.id, b.id, video.id
    original_execute = db_session.execute

    async def _failing_delete(statement, *args, **kwargs):
        if isinstance(statement, Delete):
            raise OperationalError("DELETE FROM folders", {}, Exception("disk I/O error"))
        return await original_execute(statement, *args, **kwargs)

    with monkeypatch.context() as m:
        m.setattr(db_session, "execute", _failing_delete)
        with pytest.raises(UpstreamFailureError) as exc_info:
            await FolderHierarchyManager(db_session).delete_cascade(a_id)

    assert exc_info.value.status_code == 503
    assert exc_info.value.extra == {"retryable": True}
    remaining = (await db_session.execute(select(Folder.id))).scalars().all()
    assert set(remaining) == {a_id, b_id}
    assert await db_session.scalar(select(Video.folder_id).where(Video.id == video_id)) == b_id
    assert await redis_client.get(lock_name(ws_id)) is None


async def test_descendants_is_breadth_first(db_session, make_user, make_workspace, make_folder):
    ws, a, b, c, d = await _tree(make_user, make_workspace, make_folder)
    assert await FolderHierarchyManager(db_session).descendants(a.id) == [a.id, b.id, c.id]


async def test_contents_lists_subfolders_and_videos(db_session, make_user, make_workspace, make_folder, make_video):
    owner = await make_user()
    ws = await make_workspace(owner)
    a = await make_folder(ws, "A")
    b = await make_folder(ws, "B", a)
    video = await make_video(owner, workspace=ws, folder=a)

    contents = await FolderHierarchyManager(db_session).contents(a.id)

    assert contents.folder.id == a.id
    assert [f.id for f in contents.subfolders] == [b.id]
    assert [v.id for v in contents.videos] == [video.id]
