import threading
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from blog_api.errors import Conflict, NotFound
from blog_api.schemas import PostCreate, PostUpdate, ProfileUpdate, RegisterRequest
from blog_api.storage import InMemoryStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def register(username="bob", email=None, **extra):
    return RegisterRequest(username=username, email=email or f"{username}@example.com", password="secret1", **extra)


def new_post(title="A fine title", status="published", **extra):
    return PostCreate(title=title, content="Body text long enough to pass.", category="tech", status=status, **extra)


class TestUsers(TestCase):
    def setUp(self):
        self.store = InMemoryStore()

    def test_create_user_assigns_ids_from_one(self):
        first = self.store.create_user(register("alice"), "hash")
        second = self.store.create_user(register("bob"), "hash")
        self.assertEqual((first.id, second.id), (1, 2))

    def test_optional_profile_fields_default_to_none(self):
        user = self.store.create_user(register("alice", first_name="Alice"), "hash")
        self.assertEqual(user.first_name, "Alice")
        self.assertIsNone(user.last_name)
        self.assertIsNone(user.bio)
        self.assertIsNone(user.location)
        self.assertIsNone(user.website)
        self.assertIsNone(user.avatar_url)

    def test_lookups_are_case_insensitive(self):
        created = self.store.create_user(register("Bob", "Bob@Example.com"), "hash")
        self.assertEqual(self.store.get_user_by_username("bob"), created)
        self.assertEqual(self.store.get_user_by_username("BOB"), created)
        self.assertEqual(self.store.get_user_by_email("bob@example.COM"), created)
        self.assertEqual(self.store.get_user(created.id), created)

    def test_lookup_misses_return_none(self):
        self.assertIsNone(self.store.get_user(42))
        self.assertIsNone(self.store.get_user_by_username("ghost"))
        self.assertIsNone(self.store.get_user_by_email("ghost@example.com"))

    def test_duplicate_username_rejected(self):
        self.store.create_user(register("bob", "one@example.com"), "hash")
        with self.assertRaises(Conflict):
            self.store.create_user(register("BOB", "two@example.com"), "hash")

    def test_duplicate_email_rejected(self):
        self.store.create_user(register("bob", "same@example.com"), "hash")
        with self.assertRaises(Conflict):
            self.store.create_user(register("carol", "SAME@example.com"), "hash")

    def test_ids_are_not_reused_after_failed_create(self):
        self.store.create_user(register("bob"), "hash")
        with self.assertRaises(Conflict):
            self.store.create_user(register("bob"), "hash")
        carol = self.store.create_user(register("carol"), "hash")
        self.assertEqual(carol.id, 3)

    def test_update_user_is_a_shallow_merge(self):
        user = self.store.create_user(register("bob", first_name="Bob"), "hash")
        updated = self.store.update_user(user.id, ProfileUpdate(bio="Hello", location="Addis Ababa"))
        self.assertEqual(updated.bio, "Hello")
        self.assertEqual(updated.location, "Addis Ababa")
        self.assertEqual(updated.first_name, "Bob")
        self.assertEqual(updated.username, "bob")
        self.assertEqual(updated.password, "hash")
        self.assertEqual(self.store.get_user(user.id), updated)

    def test_update_user_can_clear_optional_field(self):
        user = self.store.create_user(register("bob", first_name="Bob"), "hash")
        updated = self.store.update_user(user.id, ProfileUpdate(first_name=None))
        self.assertIsNone(updated.first_name)

    def test_update_user_email_taken_by_someone_else(self):
        self.store.create_user(register("alice", "alice@example.com"), "hash")
        bob = self.store.create_user(register("bob"), "hash")
        with self.assertRaises(Conflict):
            self.store.update_user(bob.id, ProfileUpdate(email="ALICE@example.com"))

    def test_update_user_may_keep_own_email(self):
        bob = self.store.create_user(register("bob", "bob@example.com"), "hash")
        updated = self.store.update_user(bob.id, ProfileUpdate(email="Bob@example.com"))
        self.assertEqual(updated.email, "Bob@example.com")

    def test_update_user_ignores_record_fields_in_input(self):
        user = self.store.create_user(register("bob"), "hash")
        data = ProfileUpdate.model_validate({"id": 42, "username": "mallory", "password": "x", "bio": "Hi"})
        updated = self.store.update_user(user.id, data)
        self.assertEqual((updated.id, updated.username, updated.password), (user.id, "bob", "hash"))
        self.assertEqual(updated.bio, "Hi")

    def test_update_missing_user(self):
        with self.assertRaises(NotFound):
            self.store.update_user(99, ProfileUpdate(bio="x"))


class TestBlogPosts(TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = InMemoryStore(clock=self.clock)

    def test_create_sets_defaults(self):
        post = self.store.create_blog_post(new_post(), author_id=7)
        self.assertEqual(post.id, 1)
        self.assertEqual(post.author_id, 7)
        self.assertEqual(post.created_at, T0)
        self.assertIsNone(post.updated_at)
        self.assertEqual(post.views, 0)
        self.assertIsNone(post.image_url)
        self.assertEqual(post.status, "published")

    def test_post_ids_are_independent_of_user_ids(self):
        self.store.create_user(register("bob"), "hash")
        self.store.create_user(register("carol"), "hash")
        self.assertEqual(self.store.create_blog_post(new_post(), author_id=1).id, 1)

    def test_get_blog_post_returns_drafts(self):
        draft = self.store.create_blog_post(new_post(status="draft"), author_id=1)
        self.assertEqual(self.store.get_blog_post(draft.id), draft)
        self.assertIsNone(self.store.get_blog_post(99))

    def test_all_posts_lists_published_only(self):
        published = self.store.create_blog_post(new_post(), author_id=1)
        self.store.create_blog_post(new_post(status="draft"), author_id=1)
        self.assertEqual(self.store.get_all_blog_posts(), [published])

    def test_status_change_moves_post_in_and_out_of_listing(self):
        post = self.store.create_blog_post(new_post(status="draft"), author_id=1)
        self.store.update_blog_post(post.id, PostUpdate(status="published"))
        self.assertEqual([p.id for p in self.store.get_all_blog_posts()], [post.id])
        self.store.update_blog_post(post.id, PostUpdate(status="draft"))
        self.assertEqual(self.store.get_all_blog_posts(), [])

    def test_listing_is_newest_first(self):
        old = self.store.create_blog_post(new_post("Old post"), author_id=1)
        self.clock.advance(60)
        new = self.store.create_blog_post(new_post("New post"), author_id=1)
        self.assertEqual([p.id for p in self.store.get_all_blog_posts()], [new.id, old.id])

    def test_older_post_inserted_later_still_sorted(self):
        self.clock.advance(3600)
        newer = self.store.create_blog_post(new_post("Newer post"), author_id=1)
        self.clock.now = T0
        older = self.store.create_blog_post(new_post("Older post"), author_id=1)
        self.assertEqual([p.id for p in self.store.get_all_blog_posts()], [newer.id, older.id])
        self.assertEqual([p.id for p in self.store.get_blog_posts_by_author(1)], [newer.id, older.id])

    def test_equal_timestamps_keep_insertion_order(self):
        ids = [self.store.create_blog_post(new_post(f"Post number {i}"), author_id=1).id for i in range(4)]
        self.assertEqual([p.id for p in self.store.get_all_blog_posts()], ids)

    def test_posts_by_author_include_drafts_only_for_that_author(self):
        mine_pub = self.store.create_blog_post(new_post(), author_id=1)
        self.clock.advance(1)
        mine_draft = self.store.create_blog_post(new_post(status="draft"), author_id=1)
        self.store.create_blog_post(new_post(), author_id=2)
        self.assertEqual(
            [p.id for p in self.store.get_blog_posts_by_author(1)], [mine_draft.id, mine_pub.id]
        )
        self.assertEqual(self.store.get_blog_posts_by_author(3), [])

    def test_update_merges_and_stamps_updated_at(self):
        post = self.store.create_blog_post(new_post(image_url="http://img"), author_id=1)
        self.clock.advance(30)
        updated = self.store.update_blog_post(post.id, PostUpdate(title="Brand new title"))
        self.assertEqual(updated.title, "Brand new title")
        self.assertEqual(updated.content, post.content)
        self.assertEqual(updated.image_url, "http://img")
        self.assertEqual(updated.created_at, post.created_at)
        self.assertEqual(updated.updated_at, T0 + timedelta(seconds=30))

    def test_empty_update_still_sets_updated_at(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        self.clock.advance(5)
        updated = self.store.update_blog_post(post.id, PostUpdate())
        self.assertEqual(updated.updated_at, T0 + timedelta(seconds=5))
        self.assertEqual(updated.title, post.title)

    def test_updated_at_never_goes_backwards(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        self.clock.advance(100)
        first = self.store.update_blog_post(post.id, PostUpdate())
        self.clock.now = T0 - timedelta(days=1)
        second = self.store.update_blog_post(post.id, PostUpdate())
        self.assertGreaterEqual(second.updated_at, first.updated_at)
        self.assertGreaterEqual(first.updated_at, post.created_at)

    def test_update_keeps_views_and_author(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        self.store.increment_post_views(post.id)
        updated = self.store.update_blog_post(post.id, PostUpdate(category="news"))
        self.assertEqual(updated.views, 1)
        self.assertEqual(updated.author_id, 1)

    def test_update_ignores_record_fields_in_input(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        data = PostUpdate.model_validate(
            {"id": 9, "authorId": 2, "createdAt": "2000-01-01T00:00:00Z", "views": 50, "title": "Fresh title"}
        )
        updated = self.store.update_blog_post(post.id, data)
        self.assertEqual((updated.id, updated.author_id, updated.views), (post.id, 1, 0))
        self.assertEqual(updated.created_at, post.created_at)
        self.assertEqual(updated.title, "Fresh title")

    def test_update_missing_post(self):
        with self.assertRaises(NotFound):
            self.store.update_blog_post(5, PostUpdate(title="Whatever title"))

    def test_delete_then_delete_again(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        self.store.delete_blog_post(post.id)
        self.assertIsNone(self.store.get_blog_post(post.id))
        with self.assertRaises(NotFound):
            self.store.delete_blog_post(post.id)

    def test_delete_missing_post(self):
        with self.assertRaises(NotFound):
            self.store.delete_blog_post(123)

    def test_delete_leaves_other_posts_alone(self):
        keep = self.store.create_blog_post(new_post(), author_id=1)
        drop = self.store.create_blog_post(new_post(), author_id=1)
        self.store.delete_blog_post(drop.id)
        self.assertEqual(self.store.get_blog_posts_by_author(1), [keep])

    def test_increment_views_sequentially(self):
        post = self.store.create_blog_post(new_post(), author_id=1)
        for _ in range(5):
            self.assertIsNone(self.store.increment_post_views(post.id))
        self.assertEqual(self.store.get_blog_post(post.id).views, 5)

    def test_increment_views_missing_post(self):
        with self.assertRaises(NotFound):
            self.store.increment_post_views(1)

    def test_concurrent_increments_lose_nothing(self):
        post = self.store.create_blog_post(new_post(), author_id=1)

        def bump():
            for _ in range(250):
                self.store.increment_post_views(post.id)

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(self.store.get_blog_post(post.id).views, 2000)

    def test_concurrent_updates_and_views_do_not_interleave(self):
        post = self.store.create_blog_post(new_post(), author_id=1)

        def bump():
            for _ in range(200):
                self.store.increment_post_views(post.id)

        def edit():
            for i in range(200):
                self.store.update_blog_post(post.id, PostUpdate(category=f"cat-{i}"))

        threads = [threading.Thread(target=bump), threading.Thread(target=edit), threading.Thread(target=bump)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        final = self.store.get_blog_post(post.id)
        self.assertEqual(final.views, 400)
        self.assertEqual(final.category, "cat-199")

    def test_concurrent_registrations_of_same_name(self):
        results = []

        def signup(i):
            try:
                results.append(self.store.create_user(register("racer", f"racer{i}@example.com"), "hash"))
            except Conflict:
                results.append(None)

        threads = [threading.Thread(target=signup, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len([r for r in results if r is not None]), 1)
