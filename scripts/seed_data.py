#!/usr/bin/env python3
"""
Seed script — fills a running blog API with a small demo dataset.

Creates:
  • 6 users (password: "password123")
  • 4 posts per user, every fourth one left as a draft
  • A handful of anonymous views on published posts

Run against a live server:
  python scripts/seed_data.py --api-url http://localhost:8000

The store is in-memory, so re-run this after every restart.
"""
import argparse
import http.cookiejar
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Optional


BASE_USERS = [
    ("abebe_dev", "Abebe", "Kebede"),
    ("hana_codes", "Hana", "Tesfaye"),
    ("dawit_data", "Dawit", "Alemu"),
    ("meron_ml", "Meron", "Girma"),
    ("yonas_ops", "Yonas", "Bekele"),
    ("selam_ux", "Selam", "Haile"),
]

CATEGORIES = ["technology", "community", "events", "careers", "tutorials"]

SAMPLE_POSTS = [
    ("Hosting our first meetup", "Notes from organising a developer meetup with forty attendees and two talks."),
    ("Why we moved to FastAPI", "Async endpoints, pydantic validation and automatic docs made the switch easy."),
    ("Interview tips for juniors", "Practise explaining your projects out loud; clarity beats cleverness every time."),
    ("A gentle intro to Redis", "Strings, hashes and sorted sets cover most caching needs you will run into."),
    ("Mentoring that works", "Weekly check-ins and small shipped tasks build confidence faster than lectures."),
    ("Observability on a budget", "Prometheus counters plus a few trace spans already answer most questions."),
    ("Writing your first blog post", "Pick one problem you solved this week and explain how you solved it."),
    ("Remote work, two years in", "Async communication and written decisions matter more than meeting count."),
]


@dataclass
class ApiClient:
    """One signed-in (or anonymous) user; the cookie jar carries the session."""
    base_url: str
    jar: http.cookiejar.CookieJar = field(default_factory=http.cookiejar.CookieJar)

    def __post_init__(self):
        self._opener = urllib.request.build_opener(urllib.request.HTTPCookieProcessor(self.jar))

    def _send(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(
            url, data=body, headers={"Content-Type": "application/json"}, method=method
        )
        try:
            with self._opener.open(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            body = e.read().decode()
            print(f"  HTTP {e.code} on {method} {path}: {body}")
            return {}

    def post(self, path: str, data: dict) -> dict:
        return self._send("POST", path, data)

    def get(self, path: str):
        return self._send("GET", path)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except Exception:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    anon = ApiClient(api_url)
    wait_for_api(anon)

    # ── Register users ───────────────────────────────────────────────────
    print("Registering users...")
    clients: list[ApiClient] = []
    for username, first_name, last_name in BASE_USERS:
        client = ApiClient(api_url)
        result = client.post(
            "/api/register",
            {
                "username": username,
                "email": f"{username}@example.com",
                "password": "password123",
                "firstName": first_name,
                "lastName": last_name,
            },
        )
        if result.get("id"):
            clients.append(client)
            print(f"  ✓ {username} (id={result['id']})")
        else:
            print(f"  ✗ Failed to register {username}")

    if not clients:
        print("No users registered — aborting")
        return

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    published: list[int] = []
    drafts = 0
    idx = 0
    for client in clients:
        for n in range(4):
            title, content = SAMPLE_POSTS[idx % len(SAMPLE_POSTS)]
            idx += 1
            status = "draft" if n == 3 else "published"
            result = client.post(
                "/api/posts",
                {"title": title, "content": content, "category": random.choice(CATEGORIES), "status": status},
            )
            if not result.get("id"):
                continue
            if status == "draft":
                drafts += 1
            else:
                published.append(result["id"])
    print(f"  ✓ {len(published)} published, {drafts} drafts")

    # ── Record views ─────────────────────────────────────────────────────
    print("\nViewing posts...")
    views = 0
    for post_id in published:
        for _ in range(random.randint(0, 5)):
            anon.get(f"/api/posts/{post_id}")
            views += 1
    print(f"  ✓ {views} views recorded")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    print("# Published feed, newest first:")
    print(f"  curl -s '{api_url}/api/posts' | python3 -m json.tool\n")
    print(f"# Sign in as '{BASE_USERS[0][0]}' and list your posts (drafts included):")
    print(f"  curl -s -c jar.txt -X POST '{api_url}/api/login' \\")
    print(f"    -H 'Content-Type: application/json' \\")
    print(f"    -d '{{\"username\": \"{BASE_USERS[0][0]}\", \"password\": \"password123\"}}'")
    print(f"  curl -s -b jar.txt '{api_url}/api/user/posts' | python3 -m json.tool\n")
    print(f"# Prometheus metrics: {api_url}/metrics/")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the community blog API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
