"""YouTube catalog endpoints, served by an in-process fake of the Data API."""

import uuid

import httpx
import pytest

from src.videos.youtube import YouTubeClient, get_youtube_client
from tests.fixtures.payloads import lesson_payload


def catalog_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/search":
        items = [
            {"id": {"videoId": vid}, "snippet": {"title": f"Rust tutorial {vid}", "channelTitle": "Ferris"}}
            for vid in ("vid1", "vid2", "vid3")
        ]
        return httpx.Response(200, json={"items": items})
    if path == "/videos" and request.url.params.get("chart") == "mostPopular":
        return httpx.Response(
            200,
            json={"items": [{"id": "pop1", "snippet": {"title": "Physics lecture"}, "statistics": {}}]},
        )
    if path == "/videos":
        ids = request.url.params["id"].split(",")
        known = [i for i in ids if i != "missing"]
        items = [{"id": i, "contentDetails": {"duration": "PT5M"}, "statistics": {"viewCount": "7"}} for i in known]
        return httpx.Response(200, json={"items": items})
    if path == "/channels":
        return httpx.Response(
            200,
            json={"items": [{"id": "chan1", "snippet": {"title": "Ferris"}, "statistics": {"subscriberCount": "12"}}]},
        )
    return httpx.Response(404)


@pytest.fixture
def search_log() -> list[httpx.Request]:
    return []


@pytest.fixture(autouse=True)
def fake_youtube(app, search_log):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search":
            search_log.append(request)
        return catalog_handler(request)

    async def override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://yt.test") as http:
            yield YouTubeClient(api_key="test-key", http_client=http)

    app.dependency_overrides[get_youtube_client] = override
    yield
    app.dependency_overrides.pop(get_youtube_client, None)


class TestCatalog:
    @pytest.mark.asyncio
    async def test_search(self, client) -> None:
        response = await client.get("/api/v1/youtube/search", params={"q": "rust", "maxResults": 3})

        videos = response.json()
        assert response.status_code == 200
        assert [v["videoId"] for v in videos] == ["vid1", "vid2", "vid3"]
        assert videos[0]["durationText"] == "5:00"
        assert videos[0]["embedUrl"] == "https://www.youtube.com/embed/vid1"

    @pytest.mark.asyncio
    async def test_search_requires_query(self, client) -> None:
        assert (await client.get("/api/v1/youtube/search")).status_code == 422

    @pytest.mark.asyncio
    async def test_video_details(self, client) -> None:
        found = await client.get("/api/v1/youtube/video/vid1")
        missing = await client.get("/api/v1/youtube/video/missing")

        assert found.json()["duration"] == 300
        assert found.json()["viewCount"] == 7
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_trending_and_channel(self, client) -> None:
        trending = (await client.get("/api/v1/youtube/trending")).json()
        channel = (await client.get("/api/v1/youtube/channel/chan1")).json()

        assert [v["videoId"] for v in trending] == ["pop1"]
        assert channel["subscriberCount"] == 12


class TestSaveAsLesson:
    @pytest.mark.asyncio
    async def test_save_then_duplicate(self, client) -> None:
        body = {"videoId": "vid1", "title": "Rust tutorial", "duration": "PT12M", "tags": ["rust"]}

        first = await client.post("/api/v1/youtube/save-as-lesson", json=body)
        second = await client.post("/api/v1/youtube/save-as-lesson", json=body)

        lesson = first.json()
        assert first.status_code == 201
        assert lesson["type"] == "video"
        assert lesson["source"]["platform"] == "youtube"
        assert lesson["source"]["url"] == "https://www.youtube.com/watch?v=vid1"
        assert lesson["source"]["duration"] == 720
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "ALREADY_EXISTS"
        assert second.json()["error"]["metadata"]["existing_id"] == lesson["id"]

    @pytest.mark.asyncio
    async def test_saved_video_cannot_be_added_again_as_lesson(self, client) -> None:
        saved = await client.post("/api/v1/youtube/save-as-lesson", json={"videoId": "vidY", "title": "Traits"})
        source = {"platform": "youtube", "url": "https://youtu.be/vidY", "videoId": "vidY"}

        again = await client.post("/api/v1/lessons", json=lesson_payload(type="video", source=source))

        assert again.status_code == 409
        assert again.json()["error"]["metadata"]["existing_id"] == saved.json()["id"]
        assert len((await client.get("/api/v1/lessons")).json()) == 1

    @pytest.mark.asyncio
    async def test_lesson_video_cannot_be_saved_again(self, client) -> None:
        source = {"platform": "youtube", "url": "https://youtu.be/vidY", "videoId": "vidY"}
        created = await client.post("/api/v1/lessons", json=lesson_payload(type="video", source=source))

        again = await client.post("/api/v1/youtube/save-as-lesson", json={"videoId": "vidY", "title": "Traits"})

        assert created.status_code == 201
        assert again.status_code == 409
        assert again.json()["error"]["metadata"]["existing_id"] == created.json()["id"]

    @pytest.mark.asyncio
    async def test_same_video_for_different_users(self, client_factory) -> None:
        body = {"videoId": "vid1", "title": "Rust tutorial"}
        for _ in range(2):
            other = await client_factory(uuid.uuid4())
            assert (await other.post("/api/v1/youtube/save-as-lesson", json=body)).status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_goal(self, client) -> None:
        body = {"videoId": "vid1", "title": "Rust", "goalId": "00000000-0000-0000-0000-00000000abcd"}
        assert (await client.post("/api/v1/youtube/save-as-lesson", json=body)).status_code == 404


class TestRecommendations:
    @pytest.mark.asyncio
    async def test_saved_videos_are_excluded(self, client, search_log) -> None:
        await client.post("/api/v1/youtube/save-as-lesson", json={"videoId": "vid2", "title": "Ownership explained"})
        await client.post("/api/v1/lessons", json=lesson_payload(title="Unrelated article"))

        response = await client.get("/api/v1/youtube/recommendations", params={"category": "programming"})

        assert [v["videoId"] for v in response.json()] == ["vid1", "vid3"]
        assert search_log[-1].url.params["q"] == "Ownership explained programming"
