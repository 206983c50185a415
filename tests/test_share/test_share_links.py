# tests/test_share/test_share_links.py
from datetime import timedelta

import pytest
from sqlalchemy import delete, select

from app.core.exceptions import AccessDeniedError, NotFoundError
from app.db.base_class import utcnow
from app.db.models.share_link import ShareLink
from app.db.models.video import Video
from app.schemas.enums import VideoAccess
from app.services.share_links import create_share_link, is_expired, purge_expired, resolve_share_link

pytestmark = pytest.mark.anyio


async def _link(db_session, make_user, make_video, identity_for, **kwargs):
    owner = await make_user()
    video = await make_video(owner, access=VideoAccess.PRIVATE)
    link = await create_share_link(db_session, await identity_for(owner), video, **kwargs)
    return link, video


async def test_resolve_counts_each_access(db_session, make_user, make_video, identity_for):
    link, video = await _link(db_session, make_user, make_video, identity_for)

    first = await resolve_share_link(db_session, link.token)
    second = await resolve_share_link(db_session, link.token)

    assert first.video.id == video.id
    assert second.link.access_count == 2


async def test_resolve_without_counting(db_session, make_user, make_video, identity_for):
    link, _ = await _link(db_session, make_user, make_video, identity_for)

    await resolve_share_link(db_session, link.token, count_access=False)

    assert (await db_session.execute(select(ShareLink.access_count))).scalar_one() == 0


async def test_unknown_token_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        await resolve_share_link(db_session, "no-such-token")


async def test_expired_link_is_refused_before_purge(db_session, make_user, make_video, identity_for):
    link, _ = await _link(db_session, make_user, make_video, identity_for, expires_at=utcnow() + timedelta(minutes=5))

    later = utcnow() + timedelta(minutes=10)
    assert is_expired(link, later)
    with pytest.raises(AccessDeniedError) as exc_info:
        await resolve_share_link(db_session, link.token, now=later)
    assert exc_info.value.reason == "link-expired"


async def test_email_gate(db_session, make_user, make_video, identity_for):
    link, _ = await _link(db_session, make_user, make_video, identity_for, require_email=True)

    with pytest.raises(AccessDeniedError) as exc_info:
        await resolve_share_link(db_session, link.token, email="  ")
    assert exc_info.value.reason == "email-required"
    assert exc_info.value.extra == {"requireEmail": True}

    resolved = await resolve_share_link(db_session, link.token, email="viewer@example.com")
    assert resolved.link.access_count == 1


async def test_orphaned_link_is_not_found(db_session, make_user, make_video, identity_for):
    link, video = await _link(db_session, make_user, make_video, identity_for)
    await db_session.execute(delete(Video).where(Video.id == video.id))
    await db_session.commit()

    with pytest.raises(NotFoundError) as exc_info:
        await resolve_share_link(db_session, link.token)
    assert exc_info.value.message == "Video not found"


async def test_issuing_requires_write_on_the_video(db_session, make_user, make_video, identity_for):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    stranger = await make_user()

    with pytest.raises(AccessDeniedError):
        await create_share_link(db_session, await identity_for(stranger), video)


async def test_purge_removes_only_expired(db_session, make_user, make_video, identity_for):
    now = utcnow()
    expired, _ = await _link(db_session, make_user, make_video, identity_for, expires_at=now - timedelta(days=1))
    live, _ = await _link(db_session, make_user, make_video, identity_for, expires_at=now + timedelta(days=1))
    forever, _ = await _link(db_session, make_user, make_video, identity_for)

    assert await purge_expired(db_session, now=now) == 1

    tokens = set((await db_session.execute(select(ShareLink.token))).scalars().all())
    assert tokens == {live.token, forever.token}
