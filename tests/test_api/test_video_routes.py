# tests/test_api/test_video_routes.py
import pytest
from sqlalchemy.exc import OperationalError

from app.db.session import get_session_factory
from app.dependencies.delivery import get_delivery_resolver
from app.schemas.enums import DeliveryMode, VideoAccess, WorkspaceRole
from app.services.delivery import MediaDeliveryResolver
from tests.fixtures.storage import SAMPLE_MEDIA, put_sample
from tests.fixtures.users import auth_headers

pytestmark = pytest.mark.anyio

API = "/api/v1/videos"


# ─────────────────────────────────────────────────────────────────────────────
# Streaming
# ─────────────────────────────────────────────────────────────────────────────

async def test_anonymous_streams_public_video_and_counts_one_view(
    async_client, db_session, media_storage, make_user, make_video
):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    await put_sample(media_storage, video.storage_key)

    resp = await async_client.get(f"{API}/{video.id}/stream")

    assert resp.status_code == 200
    assert resp.content == SAMPLE_MEDIA
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["content-length"] == str(len(SAMPLE_MEDIA))
    await db_session.refresh(video)
    assert video.views_count == 1


async def test_range_requests_count_only_the_first_chunk(
    async_client, db_session, media_storage, make_user, make_video
):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    await put_sample(media_storage, video.storage_key)

    first = await async_client.get(f"{API}/{video.id}/stream", headers={"Range": "bytes=0-99"})
    follow_up = await async_client.get(f"{API}/{video.id}/stream", headers={"Range": "bytes=100-199"})

    assert first.status_code == 206
    assert first.headers["content-range"] == f"bytes 0-99/{len(SAMPLE_MEDIA)}"
    assert first.content == SAMPLE_MEDIA[:100]
    assert follow_up.status_code == 206
    assert follow_up.content == SAMPLE_MEDIA[100:200]
    await db_session.refresh(video)
    assert video.views_count == 1


async def test_stream_succeeds_when_view_counter_fails(app, async_client, db_session, media_storage, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    await put_sample(media_storage, video.storage_key)

    def _unavailable():
        raise OperationalError("connect", {}, Exception("connection refused"))

    app.dependency_overrides[get_session_factory] = lambda: _unavailable
    resp = await async_client.get(f"{API}/{video.id}/stream")

    assert resp.status_code == 200
    assert resp.content == SAMPLE_MEDIA
    await db_session.refresh(video)
    assert video.views_count == 0


async def test_unsatisfiable_range_is_416(async_client, media_storage, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    await put_sample(media_storage, video.storage_key)

    resp = await async_client.get(f"{API}/{video.id}/stream", headers={"Range": "bytes=5000-"})

    assert resp.status_code == 416
    assert resp.headers["content-range"] == f"bytes */{len(SAMPLE_MEDIA)}"
    assert resp.headers["content-type"].startswith("application/problem+json")


async def test_private_video_is_hidden_from_others(async_client, media_storage, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, access=VideoAccess.PRIVATE)
    await put_sample(media_storage, video.storage_key)

    anonymous = await async_client.get(f"{API}/{video.id}/stream")
    stranger = await async_client.get(f"{API}/{video.id}/stream", headers=auth_headers(await make_user()))
    uploader = await async_client.get(f"{API}/{video.id}/stream", headers=auth_headers(owner))

    assert anonymous.status_code == 403
    assert stranger.status_code == 403
    body = stranger.json()
    assert body["code"] == "access-denied"
    assert body["detail"] == "Access denied"
    assert "reason" not in body
    assert uploader.status_code == 200


async def test_custom_video_allows_listed_email(async_client, media_storage, make_user, make_video):
    viewer = await make_user(email="guest@example.com")
    video = await make_video(await make_user(), access=VideoAccess.CUSTOM, allowed_emails=["GUEST@example.com"])
    await put_sample(media_storage, video.storage_key)

    resp = await async_client.get(f"{API}/{video.id}/stream", headers=auth_headers(viewer))

    assert resp.status_code == 200


async def test_missing_backing_object_is_404(async_client, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)

    resp = await async_client.get(f"{API}/{video.id}/stream")

    assert resp.status_code == 404
    assert resp.json()["code"] == "not-found"


async def test_signed_mode_returns_reference_or_redirect(app, async_client, db_session, media_storage, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)
    await put_sample(media_storage, video.storage_key)
    app.dependency_overrides[get_delivery_resolver] = lambda: MediaDeliveryResolver(
        media_storage, mode=DeliveryMode.SIGNED, signed_ttl_seconds=300
    )

    as_json = await async_client.get(f"{API}/{video.id}/stream")
    as_redirect = await async_client.get(f"{API}/{video.id}/stream", params={"redirect": "true"})

    assert as_json.status_code == 200
    assert as_json.json()["expires_in"] == 300
    assert as_json.json()["url"].startswith("/media/")
    assert as_json.headers["cache-control"] == "no-store"
    assert as_redirect.status_code == 307
    assert as_redirect.headers["location"].startswith("/media/")
    await db_session.refresh(video)
    assert video.views_count == 2


# ─────────────────────────────────────────────────────────────────────────────
# Metadata & auth
# ─────────────────────────────────────────────────────────────────────────────

async def test_register_video_defaults_to_workspace_access(async_client, make_user, make_workspace):
    owner = await make_user()
    ws = await make_workspace(owner)

    resp = await async_client.post(
        API,
        json={"title": "Launch", "storage_key": "videos/launch.mp4", "file_size": 2048, "workspace_id": str(ws.id)},
        headers=auth_headers(owner),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["access"] == "workspace"
    assert body["workspace_id"] == str(ws.id)
    assert body["views_count"] == 0
    assert body["settings"]["show_controls"] is True


async def test_register_into_foreign_workspace_is_denied(async_client, make_user, make_workspace):
    ws = await make_workspace(await make_user())

    resp = await async_client.post(
        API,
        json={"title": "x", "storage_key": "videos/x.mp4", "file_size": 1, "workspace_id": str(ws.id)},
        headers=auth_headers(await make_user()),
    )

    assert resp.status_code == 403


async def test_workspace_member_may_edit_but_not_delete(async_client, make_user, make_workspace, make_video):
    owner = await make_user()
    member = await make_user()
    ws = await make_workspace(owner, members={member: WorkspaceRole.MEMBER})
    video = await make_video(owner, access=VideoAccess.WORKSPACE, workspace=ws)

    renamed = await async_client.patch(f"{API}/{video.id}", json={"title": "Renamed"}, headers=auth_headers(member))
    settings = await async_client.patch(f"{API}/{video.id}", json={"access": "public"}, headers=auth_headers(member))
    deleted = await async_client.delete(f"{API}/{video.id}", headers=auth_headers(member))

    assert renamed.status_code == 200
    assert renamed.json()["title"] == "Renamed"
    assert settings.status_code == 403
    assert deleted.status_code == 403


async def test_owner_deletes_video_and_backing_object(async_client, media_storage, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner)
    await put_sample(media_storage, video.storage_key)

    resp = await async_client.delete(f"{API}/{video.id}", headers=auth_headers(owner))

    assert resp.status_code == 204
    assert await media_storage.stat(video.storage_key) is None
    assert (await async_client.get(f"{API}/{video.id}", headers=auth_headers(owner))).status_code == 404


async def test_invalid_token_is_401(async_client, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)

    resp = await async_client.get(f"{API}/{video.id}", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401


async def test_malformed_video_id_is_400(async_client):
    resp = await async_client.get(f"{API}/not-a-uuid")
    assert resp.status_code == 400
    assert resp.json()["title"] == "Validation error"


# ─────────────────────────────────────────────────────────────────────────────
# Analytics
# ─────────────────────────────────────────────────────────────────────────────

async def test_analytics_round_trip(async_client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, access=VideoAccess.PUBLIC, duration=100.0)

    view = await async_client.post(
        f"{API}/{video.id}/analytics/view",
        json={"session_id": "s-1", "watch_time": 30.5, "completed_quarters": [0], "playback_positions": [10.0]},
    )
    quarter = await async_client.post(f"{API}/{video.id}/analytics/quarters", json={"session_id": "s-1", "quarter": 1})
    cta = await async_client.post(f"{API}/{video.id}/analytics/cta-click", json={"session_id": "s-1"})
    report = await async_client.get(f"{API}/{video.id}/analytics", headers=auth_headers(owner))

    assert (view.status_code, quarter.status_code, cta.status_code) == (202, 202, 202)
    assert report.status_code == 200
    body = report.json()
    assert body["watch_time"] == {"total": 30.5, "average": 30.5}
    assert body["retention"]["quarters"] == [100.0, 100.0, 0.0, 0.0]
    assert body["cta_clicks"] == 1
    assert body["unique_viewers"] == 0
    assert body["views_by_date"][-1]["count"] == 1


async def test_malformed_session_id_is_400(async_client, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)

    resp = await async_client.post(f"{API}/{video.id}/analytics/view", json={"session_id": "bad id!"})

    assert resp.status_code == 400


async def test_analytics_report_requires_manage(async_client, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)

    resp = await async_client.get(f"{API}/{video.id}/analytics", headers=auth_headers(await make_user()))

    assert resp.status_code == 403
