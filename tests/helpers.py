from datetime import datetime, timedelta, timezone
from unittest import TestCase

from fastapi.testclient import TestClient

from blog_api.config import Settings
from blog_api.main import create_app
from blog_api.sessions import MemorySessionStore
from blog_api.storage import InMemoryStore


class TickingClock:
    """Each reading is one second after the previous one."""

    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


VALID_POST = {
    "title": "Hello from Addis",
    "content": "A post body that is comfortably over twenty characters.",
    "category": "community",
}


class ApiTestCase(TestCase):
    """Fresh app, store and session store per test; one TestClient per user."""

    def setUp(self):
        self.settings = Settings(session_backend="memory")
        self.store = InMemoryStore(clock=TickingClock())
        self.sessions = MemorySessionStore()
        self.app = create_app(settings=self.settings, store=self.store, sessions=self.sessions)
        self.anon = TestClient(self.app)

    def client(self) -> TestClient:
        return TestClient(self.app)

    def signup(self, username: str, password: str = "secret1", **extra) -> TestClient:
        client = self.client()
        body = {"username": username, "email": f"{username}@example.com", "password": password, **extra}
        resp = client.post("/api/register", json=body)
        self.assertEqual(resp.status_code, 201, resp.text)
        return client

    def create_post(self, client: TestClient, **overrides) -> dict:
        resp = client.post("/api/posts", json={**VALID_POST, **overrides})
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()
