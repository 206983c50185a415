from __future__ import annotations

"""
📁 FolderHierarchyManager
=========================

Owns the folder forest of every workspace.

Invariants
----------
- A folder's parent exists and lives in the same workspace.
- No folder is its own ancestor.
- ``path`` equals ``"/" + id`` at the root and ``parent.path + "/" + id``
  below it; moves rewrite the paths of the whole moved subtree eagerly.

Concurrency
-----------
Moves and cascading deletes take the per-workspace Redis lock
``lock:folders:workspace:{id}`` and run in one DB transaction with row locks
(``SELECT … FOR UPDATE``), so two structural changes in the same workspace
never interleave. Creation only reads the parent and needs neither.

Traversals are iterative (worklist + visited set) and bounded by the number
of folders in the workspace, so corrupt parent loops terminate.
"""

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError, UpstreamFailureError
from app.core.redis_client import redis_wrapper
from app.db.models.folder import Folder
from app.db.models.video import Video
from app.db.session import unit_of_work

logger = logging.getLogger(__name__)


def folder_path(folder_id: UUID, parent_path: Optional[str]) -> str:
    """Materialized path of a folder given its parent's path (None at root)."""
    return f"{parent_path}/{folder_id}" if parent_path else f"/{folder_id}"


def lock_name(workspace_id: UUID) -> str:
    return f"lock:folders:workspace:{workspace_id}"


@dataclass
class FolderContents:
    folder: Folder
    subfolders: List[Folder]
    videos: List[Video]


@dataclass(frozen=True)
class CascadeResult:
    deleted_folder_ids: List[UUID]
    detached_video_count: int


class FolderHierarchyManager:
    """Folder tree operations over one `AsyncSession`."""

    def __init__(self, db: AsyncSession, *, redis=redis_wrapper) -> None:
        self.db = db
        self.redis = redis

    # ── lookups ───────────────────────────────────────────────
    async def get(self, folder_id: UUID) -> Folder:
        folder = await self.db.get(Folder, folder_id)
        if folder is None:
            raise NotFoundError("Folder")
        return folder

    async def list_root(self, workspace_id: UUID) -> List[Folder]:
        rows = await self.db.execute(
            select(Folder)
            .where(Folder.workspace_id == workspace_id, Folder.parent_folder_id.is_(None))
            .order_by(Folder.name)
        )
        return list(rows.scalars().all())

    async def list_children(self, folder_id: UUID) -> List[Folder]:
        rows = await self.db.execute(
            select(Folder).where(Folder.parent_folder_id == folder_id).order_by(Folder.name)
        )
        return list(rows.scalars().all())

    async def contents(self, folder_id: UUID) -> FolderContents:
        folder = await self.get(folder_id)
        videos = await self.db.execute(
            select(Video).where(Video.folder_id == folder_id).order_by(Video.created_at.desc())
        )
        return FolderContents(
            folder=folder,
            subfolders=await self.list_children(folder_id),
            videos=list(videos.scalars().all()),
        )

    async def descendants(self, folder_id: UUID) -> List[UUID]:
        """Ids of `folder_id` and everything below it, breadth-first."""
        visited: Set[UUID] = {folder_id}
        order: List[UUID] = [folder_id]
        frontier: List[UUID] = [folder_id]
        while frontier:
            rows = await self.db.execute(select(Folder.id).where(Folder.parent_folder_id.in_(frontier)))
            frontier = []
            for child_id in rows.scalars().all():
                if child_id not in visited:
                    visited.add(child_id)
                    order.append(child_id)
                    frontier.append(child_id)
        return order

    # ── create / rename ───────────────────────────────────────
    async def create(
        self,
        *,
        name: str,
        workspace_id: UUID,
        parent_folder_id: Optional[UUID] = None,
        created_by: Optional[UUID] = None,
    ) -> Folder:
        """
        Create a folder under `parent_folder_id` (or at the workspace root).

        Steps
        -----
        1) Validate the parent (exists, same workspace).
        2) Generate the id up front so the path can embed it.
        3) Insert and commit.
        """
        parent_path: Optional[str] = None
        if parent_folder_id is not None:
            parent = await self.db.get(Folder, parent_folder_id)
            if parent is None or parent.workspace_id != workspace_id:
                raise InvalidStateError("invalid-parent")
            parent_path = parent.path

        folder_id = uuid.uuid4()
        folder = Folder(
            id=folder_id,
            name=name,
            workspace_id=workspace_id,
            parent_folder_id=parent_folder_id,
            path=folder_path(folder_id, parent_path),
            created_by=created_by,
        )
        async with unit_of_work(self.db):
            self.db.add(folder)
        logger.info("folder created id=%s workspace=%s parent=%s", folder_id, workspace_id, parent_folder_id)
        return folder

    async def rename(self, folder_id: UUID, name: str) -> Folder:
        folder = await self.get(folder_id)
        async with unit_of_work(self.db):
            folder.name = name
        return folder

    # ── move ──────────────────────────────────────────────────
    async def move(self, folder_id: UUID, new_parent_folder_id: Optional[UUID]) -> Folder:
        """
        Reparent `folder_id` (``None`` moves it to the root).

        Steps
        -----
        1) Reject self-parenting before taking any lock.
        2) Under the workspace lock: row-lock the folder and the new parent,
           validate the parent and walk its ancestor chain for cycles.
        3) Rewrite the parent pointer and the paths of the whole subtree.
        """
        if new_parent_folder_id is not None and new_parent_folder_id == folder_id:
            raise InvalidStateError("cannot-be-own-parent")

        folder = await self.get(folder_id)
        workspace_id = folder.workspace_id

        async with self._workspace_lock(workspace_id):
            async with unit_of_work(self.db):
                folder = (
                    await self.db.execute(
                        select(Folder)
                        .where(Folder.id == folder_id)
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    )
                ).scalar_one()

                parent_path: Optional[str] = None
                if new_parent_folder_id is not None:
                    parent = (
                        await self.db.execute(
                            select(Folder)
                            .where(Folder.id == new_parent_folder_id)
                            .with_for_update()
                            .execution_options(populate_existing=True)
                        )
                    ).scalar_one_or_none()
                    if parent is None or parent.workspace_id != workspace_id:
                        raise InvalidStateError("invalid-parent")

                    parents = await self._parent_map(workspace_id)
                    if self._is_ancestor_or_self(folder_id, new_parent_folder_id, parents):
                        raise InvalidStateError("cycle-detected")
                    parent_path = parent.path

                folder.parent_folder_id = new_parent_folder_id
                folder.path = folder_path(folder.id, parent_path)
                await self._rewrite_subtree_paths(folder)

        logger.info("folder moved id=%s new_parent=%s", folder_id, new_parent_folder_id)
        return folder

    # ── cascade delete ────────────────────────────────────────
    async def delete_cascade(self, folder_id: UUID) -> CascadeResult:
        """
        Delete `folder_id` and all its descendants in one transaction.

        Videos inside any deleted folder are kept and moved to no folder.
        A storage failure rolls everything back and surfaces as a retryable
        `UpstreamFailureError`.
        """
        folder = await self.get(folder_id)

        async with self._workspace_lock(folder.workspace_id):
            try:
                async with unit_of_work(self.db):
                    await self.db.execute(select(Folder.id).where(Folder.id == folder_id).with_for_update())
                    ids = await self.descendants(folder_id)
                    detached = await self.db.execute(
                        update(Video).where(Video.folder_id.in_(ids)).values(folder_id=None)
                    )
                    await self.db.execute(delete(Folder).where(Folder.id.in_(ids)))
            except SQLAlchemyError as e:
                logger.exception("cascade delete failed folder=%s", folder_id)
                raise UpstreamFailureError("Folder deletion failed; nothing was changed") from e

        logger.info("folder tree deleted root=%s folders=%d videos_detached=%s", folder_id, len(ids), detached.rowcount)
        return CascadeResult(deleted_folder_ids=ids, detached_video_count=int(detached.rowcount or 0))

    # ── internals ─────────────────────────────────────────────
    def _workspace_lock(self, workspace_id: UUID):
        return _LockAdapter(
            self.redis.lock(
                lock_name(workspace_id),
                timeout=settings.FOLDER_LOCK_TIMEOUT_SECONDS,
                blocking_timeout=settings.FOLDER_LOCK_WAIT_SECONDS,
            )
        )

    async def _parent_map(self, workspace_id: UUID) -> Dict[UUID, Optional[UUID]]:
        rows = await self.db.execute(
            select(Folder.id, Folder.parent_folder_id).where(Folder.workspace_id == workspace_id)
        )
        return {fid: pid for fid, pid in rows.all()}

    @staticmethod
    def _is_ancestor_or_self(candidate: UUID, start: UUID, parents: Dict[UUID, Optional[UUID]]) -> bool:
        """True when `candidate` is `start` or one of its ancestors.

        The walk is bounded by the folder count; exceeding it means the
        stored tree already contains a loop, which is reported as a cycle.
        """
        bound = len(parents) + 1
        cur: Optional[UUID] = start
        steps = 0
        while cur is not None:
            if cur == candidate:
                return True
            steps += 1
            if steps > bound:
                return True
            cur = parents.get(cur)
        return False

    async def _rewrite_subtree_paths(self, root: Folder) -> None:
        queue = deque([root])
        seen: Set[UUID] = {root.id}
        while queue:
            node = queue.popleft()
            children = await self.db.execute(
                select(Folder).where(Folder.parent_folder_id == node.id).with_for_update()
            )
            for child in children.scalars().all():
                if child.id in seen:
                    continue
                seen.add(child.id)
                child.path = folder_path(child.id, node.path)
                queue.append(child)


class _LockAdapter:
    """Maps lock acquisition timeouts to a retryable 409 and a missing Redis to 503."""

    def __init__(self, cm) -> None:
        self._cm = cm

    async def __aenter__(self):
        try:
            return await self._cm.__aenter__()
        except TimeoutError as e:
            raise ConflictError("Folder tree is being modified; retry shortly", code="folder-tree-busy") from e
        except RuntimeError as e:
            logger.error("folder lock unavailable: %s", e)
            raise UpstreamFailureError("Coordination service unavailable") from e

    async def __aexit__(self, exc_type, exc, tb):
        return await self._cm.__aexit__(exc_type, exc, tb)


__all__ = ["FolderHierarchyManager", "FolderContents", "CascadeResult", "folder_path", "lock_name"]
