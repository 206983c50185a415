# tests/test_api/test_share_routes.py
import pytest

from app.schemas.enums import VideoAccess
from tests.fixtures.storage import SAMPLE_MEDIA, put_sample
from tests.fixtures.users import auth_headers

pytestmark = pytest.mark.anyio

API = "/api/v1/share"


async def _issue(async_client, owner, video, **body):
    resp = await async_client.post(API, json={"video_id": str(video.id), **body}, headers=auth_headers(owner))
    assert resp.status_code == 201
    return resp.json()


async def test_issue_and_open_a_link(async_client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, access=VideoAccess.PRIVATE)

    link = await _issue(async_client, owner, video)
    assert link["video_id"] == str(video.id)
    assert link["access_count"] == 0
    assert link["token"]

    opened = await async_client.get(f"{API}/{link['token']}")

    assert opened.status_code == 200
    assert opened.headers["cache-control"] == "no-store"
    body = opened.json()
    assert body["id"] == str(video.id)
    assert body["require_email"] is False
    assert "storage_key" not in body


async def test_email_gate_is_signalled_in_the_problem_body(async_client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner)
    link = await _issue(async_client, owner, video, require_email=True)

    missing = await async_client.get(f"{API}/{link['token']}")
    supplied = await async_client.get(f"{API}/{link['token']}", params={"email": "viewer@example.com"})

    assert missing.status_code == 403
    assert missing.json()["requireEmail"] is True
    assert supplied.status_code == 200
    assert supplied.json()["require_email"] is True


async def test_stream_through_a_link_bypasses_video_access(async_client, media_storage, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, access=VideoAccess.PRIVATE)
    await put_sample(media_storage, video.storage_key)
    link = await _issue(async_client, owner, video)

    direct = await async_client.get(f"/api/v1/videos/{video.id}/stream")
    shared = await async_client.get(f"{API}/{link['token']}/stream")

    assert direct.status_code == 403
    assert shared.status_code == 200
    assert shared.content == SAMPLE_MEDIA


async def test_stranger_cannot_issue_links(async_client, make_user, make_video):
    video = await make_video(await make_user(), access=VideoAccess.PUBLIC)

    resp = await async_client.post(API, json={"video_id": str(video.id)}, headers=auth_headers(await make_user()))

    assert resp.status_code == 403


async def test_unknown_token_is_404(async_client):
    resp = await async_client.get(f"{API}/does-not-exist")
    assert resp.status_code == 404
