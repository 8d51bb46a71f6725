import unittest
from fastapi.testclient import TestClient
from streamtv import server
from streamtv.config import settings
from streamtv.clients.catalog_client import CatalogError
from streamtv.models import Content, Episode
from streamtv.progress import PlaybackProgressStore
from streamtv.storage import MemoryStorage, StorageWriteError


class ReadOnlyStorage(MemoryStorage):
    def set(self, key, value):
        raise StorageWriteError("read-only")


class FakeCatalog:
    def __init__(self, fail_episodes=False):
        self.fail_episodes = fail_episodes

    async def get_content(self, content_id):
        if content_id != 12:
            return None
        return Content(id=12, name="Serie X", capa=None, tipo="Série")

    async def get_episodes(self, content_name, season):
        if self.fail_episodes:
            raise CatalogError("catalog down")
        return [
            Episode(id=101, name=content_name, temporada=season, numero=1),
            Episode(id=102, name=content_name, temporada=season, numero=2),
        ]


def body(content_id, progress, timestamp, **extra):
    data = {
        "contentId": content_id,
        "progress": progress,
        "currentTime": progress * 6,
        "duration": 600,
        "timestamp": timestamp,
        "contentName": f"Content {content_id}",
        "contentCapa": "",
        "contentTipo": "Filme",
    }
    data.update(extra)
    return data


class TestServer(unittest.TestCase):
    def setUp(self):
        settings.HTTP_SERVER_TOKEN = None
        server.store = PlaybackProgressStore(MemoryStorage(), key="k")
        self.client = TestClient(server.app)

    def tearDown(self):
        server.store = None
        server.catalog = None

    def test_healthz(self):
        self.assertEqual(self.client.get("/healthz").json()["status"], "ok")
        server.store = None
        self.assertEqual(self.client.get("/healthz").json(), {"status": "starting"})

    def test_save_get_remove(self):
        resp = self.client.put("/progress", json=body(1, 10, 100))
        self.assertEqual(resp.status_code, 200)
        self.client.put("/progress", json=body(1, 50, 200))

        resp = self.client.get("/progress/1")
        self.assertEqual(resp.json()["progress"], 50)
        self.assertEqual(len(self.client.get("/progress").json()), 1)

        self.assertEqual(self.client.delete("/progress/1").status_code, 204)
        self.assertEqual(self.client.get("/progress/1").status_code, 404)

    def test_episode_lookup(self):
        self.client.put("/progress", json=body(2, 40, 100, episodeId=9, season=1, episode=3))
        self.assertEqual(self.client.get("/progress/2").status_code, 404)
        self.assertEqual(self.client.get("/progress/2", params={"episode_id": 9}).json()["episode"], 3)

    def test_invalid_body(self):
        resp = self.client.put("/progress", json=body(1, 150, 100))
        self.assertEqual(resp.status_code, 422)

    def test_continue_watching(self):
        self.client.put("/progress", json=body(1, 50, 100))
        self.client.put("/progress", json=body(2, 30, 300, episodeId=9, season=1, episode=3))
        self.client.put("/progress", json=body(3, 96, 500))

        items = self.client.get("/continue-watching").json()
        self.assertEqual([i["contentId"] for i in items], [2, 1])
        self.assertEqual(items[0]["subtitle"], "T1 E3")
        self.assertEqual(items[1]["remainingTime"], "5:00")

    def test_write_failure_is_503(self):
        server.store = PlaybackProgressStore(ReadOnlyStorage(), key="k")
        self.assertEqual(self.client.put("/progress", json=body(1, 10, 100)).status_code, 503)

    def test_token_required(self):
        settings.HTTP_SERVER_TOKEN = "secret"
        try:
            self.assertEqual(self.client.get("/progress").status_code, 401)
            resp = self.client.get("/progress", headers={"X-Token": "secret"})
            self.assertEqual(resp.status_code, 200)
        finally:
            settings.HTTP_SERVER_TOKEN = None

    def test_playback_report_builds_record(self):
        server.catalog = FakeCatalog()
        resp = self.client.put("/playback/12", json={"currentTime": 300, "duration": 1200, "episodeId": 102, "season": 1})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["progress"], 25)
        self.assertEqual(data["contentName"], "Serie X")
        self.assertEqual(data["contentCapa"], "")
        self.assertEqual((data["season"], data["episode"]), (1, 2))

        resp = self.client.get("/playback/12", params={"episode_id": 102})
        self.assertEqual(resp.json(), {"position": 300})
        self.assertEqual(self.client.get("/playback/12").json(), {"position": 0})

    def test_playback_report_errors(self):
        self.assertEqual(self.client.put("/playback/12", json={"currentTime": 1, "duration": 10}).status_code, 503)

        server.catalog = FakeCatalog()
        self.assertEqual(self.client.put("/playback/99", json={"currentTime": 1, "duration": 10}).status_code, 404)
        resp = self.client.put("/playback/12", json={"currentTime": 1, "duration": 10, "episodeId": 555, "season": 1})
        self.assertEqual(resp.status_code, 404)
        resp = self.client.put("/playback/12", json={"currentTime": 1, "duration": 10, "episodeId": 101})
        self.assertEqual(resp.status_code, 422)

        server.catalog = FakeCatalog(fail_episodes=True)
        resp = self.client.put("/playback/12", json={"currentTime": 1, "duration": 10, "episodeId": 101, "season": 1})
        self.assertEqual(resp.status_code, 502)

    def test_playback_without_duration_is_ignored(self):
        server.catalog = FakeCatalog()
        resp = self.client.put("/playback/12", json={"currentTime": 0, "duration": 0})
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(self.client.get("/progress").json(), [])


if __name__ == '__main__':
    unittest.main()
