"""
In-memory entity store, the single source of truth for users and posts.

Collections:
  users      — id → User, ids from a counter starting at 1
  blog_posts — id → BlogPost, ids from an independent counter starting at 1

Each collection has its own lock; every merge-then-write happens inside it,
so concurrent updates and view increments on the same post never lose work.
The store knows nothing about HTTP or authentication. It signals NotFound
for missing entities and Conflict for duplicate usernames/emails, nothing else.
"""
import itertools
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from blog_api.errors import Conflict, NotFound
from blog_api.models import BlogPost, User
from blog_api.schemas import PostCreate, PostUpdate, ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(posts: Iterable[BlogPost]) -> list[BlogPost]:
    # sorted() is stable with reverse=True: equal timestamps keep insertion order
    return sorted(posts, key=lambda p: p.created_at, reverse=True)


class InMemoryStore:
    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._users: dict[int, User] = {}
        self._blog_posts: dict[int, BlogPost] = {}
        self._user_ids = itertools.count(1)
        self._post_ids = itertools.count(1)
        self._users_lock = threading.RLock()
        self._posts_lock = threading.RLock()

    # ─────────────────────────── Users ────────────────────────────────────

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        with self._users_lock:
            return next((u for u in self._users.values() if u.username.lower() == wanted), None)

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        with self._users_lock:
            return next((u for u in self._users.values() if u.email.lower() == wanted), None)

    def create_user(self, data: RegisterRequest, password_hash: str) -> User:
        """Insert a new user; the id is drawn before the uniqueness check and is never reused."""
        with self._users_lock:
            user_id = next(self._user_ids)
            if self.get_user_by_username(data.username):
                raise Conflict("Username already exists")
            if self.get_user_by_email(str(data.email)):
                raise Conflict("Email already exists")
            user = User(
                id=user_id,
                username=data.username,
                email=str(data.email),
                password=password_hash,
                first_name=data.first_name or None,
                last_name=data.last_name or None,
            )
            self._users[user_id] = user
        logger.info("Created user %s (id=%s)", user.username, user.id)
        return user

    def update_user(self, user_id: int, data: ProfileUpdate) -> User:
        changes = {k: (str(v) if k == "email" else v) for k, v in data.model_dump(exclude_unset=True).items()}
        with self._users_lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound("User not found")
            email = changes.get("email")
            if email is not None:
                holder = self.get_user_by_email(email)
                if holder is not None and holder.id != user_id:
                    raise Conflict("Email already exists")
            updated = replace(user, **changes)
            self._users[user_id] = updated
        return updated

    # ─────────────────────────── Blog posts ───────────────────────────────

    def get_all_blog_posts(self) -> list[BlogPost]:
        """Published posts only, newest first."""
        with self._posts_lock:
            posts = [p for p in self._blog_posts.values() if p.status == "published"]
        return _newest_first(posts)

    def get_blog_post(self, post_id: int) -> Optional[BlogPost]:
        return self._blog_posts.get(post_id)

    def get_blog_posts_by_author(self, author_id: int) -> list[BlogPost]:
        """Every post by ``author_id`` whatever its status, newest first."""
        with self._posts_lock:
            posts = [p for p in self._blog_posts.values() if p.author_id == author_id]
        return _newest_first(posts)

    def create_blog_post(self, data: PostCreate, author_id: int) -> BlogPost:
        with self._posts_lock:
            post = BlogPost(
                id=next(self._post_ids),
                title=data.title,
                content=data.content,
                category=data.category,
                status=data.status,
                image_url=data.image_url or None,
                author_id=author_id,
                created_at=self._clock(),
            )
            self._blog_posts[post.id] = post
        return post

    def update_blog_post(self, post_id: int, data: PostUpdate) -> BlogPost:
        changes = data.model_dump(exclude_unset=True)
        with self._posts_lock:
            post = self._blog_posts.get(post_id)
            if post is None:
                raise NotFound("Blog post not found")
            # updated_at never moves backwards, even if the clock does
            updated_at = max(self._clock(), post.updated_at or post.created_at)
            updated = replace(post, **changes, updated_at=updated_at)
            self._blog_posts[post_id] = updated
        return updated

    def delete_blog_post(self, post_id: int) -> None:
        with self._posts_lock:
            if self._blog_posts.pop(post_id, None) is None:
                raise NotFound("Blog post not found")

    def increment_post_views(self, post_id: int) -> None:
        with self._posts_lock:
            post = self._blog_posts.get(post_id)
            if post is None:
                raise NotFound("Blog post not found")
            self._blog_posts[post_id] = replace(post, views=post.views + 1)
