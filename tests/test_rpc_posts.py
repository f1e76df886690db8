"""End-to-end tests for the posts procedures."""

import pytest
from sqlalchemy import select

from inkwell.models.category import post_categories
from inkwell.posts import service as post_service
from inkwell.utils.slug import SLUG_PATTERN


@pytest.fixture
def author(make_user):
    return make_user(name="Ann", email="ann@x.com")


@pytest.fixture
def create_post(call, author, categories, post_data):
    _, token = author

    def _create(**overrides):
        status, body = call("posts.create", post_data(**overrides), token=token)
        assert status == 200, body
        return body["result"]["data"]
    return _create


def _category_ids(post):
    return [c["id"] for c in post["categories"]]


class TestCreate:
    def test_create_uses_caller_as_author(self, create_post, author):
        post = create_post()
        assert post["author"]["id"] == author[0]
        assert post["slug"] == "weekend-in-lisbon"
        assert post["published"] is False
        assert _category_ids(post) == [1]
        assert "passwordHash" not in post["author"]

    def test_title_length_boundary(self, call, author, categories, post_data):
        _, token = author
        status, body = call("posts.create", post_data(title="Hi"), token=token)
        assert status == 400
        assert body["error"]["data"]["type"] == "VALIDATION_ERROR"
        assert [e["field"] for e in body["error"]["data"]["validationErrors"]] == ["title"]

        status, body = call("posts.create", post_data(title="Hii"), token=token)
        assert status == 200
        assert body["result"]["data"]["slug"] == "hii"

    def test_same_title_gives_distinct_valid_slugs(self, create_post):
        slugs = [create_post(title="Same Story")["slug"] for _ in range(4)]
        assert slugs == ["same-story", "same-story-1", "same-story-2", "same-story-3"]
        assert all(SLUG_PATTERN.match(s) and len(s) <= 100 for s in slugs)

    def test_explicit_slug_wins_over_title(self, create_post):
        assert create_post(slug="custom-path")["slug"] == "custom-path"

    def test_author_identified_by_id_without_token(self, call, author, categories, post_data):
        status, body = call("posts.create", post_data(authorId=str(author[0])))
        assert status == 200
        assert body["result"]["data"]["authorId"] == author[0]

    def test_anonymous_without_author_is_unauthorized(self, call, categories, post_data):
        status, body = call("posts.create", post_data())
        assert status == 401

    def test_unknown_category_is_bad_request(self, call, author, categories, post_data):
        status, body = call("posts.create", post_data(categoryIds=[1, 99]), token=author[1])
        assert status == 400
        assert body["error"]["data"]["details"] == {"missingCategoryIds": [99]}

    def test_slug_taken_between_resolve_and_insert_is_conflict(self, create_post, call, author, post_data, monkeypatch):
        taken = create_post()["slug"]
        # another writer claims the slug after it was resolved as free
        monkeypatch.setattr(post_service, "ensure_unique_post_slug", lambda db, source, exclude_id=None: taken)

        status, body = call("posts.create", post_data(title="Different title"), token=author[1])

        assert status == 409
        assert body["error"]["data"]["type"] == "CONFLICT"
        assert body["error"]["message"] == "A record with this value already exists"
        _, listed = call("posts.list")
        assert [p["slug"] for p in listed["result"]["data"]] == [taken]

    def test_missing_categories_reject_without_partial_write(self, call, author, categories, post_data):
        call("posts.create", post_data(categoryIds=[99]), token=author[1])
        status, body = call("posts.list")
        assert body["result"]["data"] == []


class TestReads:
    def test_get_by_slug_not_found(self, call):
        status, body = call("posts.getBySlug", {"slug": "does-not-exist"})
        assert status == 404
        assert body["error"]["message"] == "Post not found"
        assert body["error"]["data"]["type"] == "NOT_FOUND"

    def test_get_by_id_accepts_numeric_string(self, call, create_post):
        post = create_post()
        status, body = call("posts.getById", str(post["id"]))
        assert status == 200
        assert body["result"]["data"]["slug"] == post["slug"]

    def test_get_by_id_rejects_non_positive(self, call):
        status, body = call("posts.getById", 0)
        assert status == 400

    def test_list_by_author(self, call, create_post, author, make_user):
        create_post(title="First post")
        other_id, other_token = make_user(name="Bob", email="bob@x.com")
        status, body = call("posts.listByAuthor", {"authorId": other_id})
        assert body["result"]["data"] == []
        status, body = call("posts.listByAuthor", {"authorId": author[0]})
        assert [p["title"] for p in body["result"]["data"]] == ["First post"]

    def test_filter_by_category(self, call, create_post):
        create_post(title="Food tour", categoryIds=[2])
        create_post(title="Beaches", categoryIds=[1])

        _, body = call("posts.filterByCategory", {"categorySlug": "culinary"})
        assert [p["title"] for p in body["result"]["data"]] == ["Food tour"]

        _, body = call("posts.filterByCategory", {"categorySlug": "lifestyle"})
        assert body["result"]["data"] == []

        status, body = call("posts.filterByCategory", {"categorySlug": "unknown"})
        assert status == 404
        assert body["error"]["message"] == "Category not found"

    def test_search_with_pagination(self, call, create_post):
        for i in range(5):
            create_post(title=f"Lisbon diary {i}", published=True)
        create_post(title="Porto notes", content="Nothing about the capital here.", excerpt="A day in Porto")

        _, body = call("posts.search", {"search": "LISBON", "page": 2, "pageSize": 2})
        page = body["result"]["data"]
        assert page["total"] == 5
        assert page["totalPages"] == 3
        assert page["page"] == 2
        assert len(page["items"]) == 2

        _, body = call("posts.search", {"published": False})
        assert [p["title"] for p in body["result"]["data"]["items"]] == ["Porto notes"]

    def test_search_escapes_like_wildcards(self, call, create_post):
        create_post(title="Plain title")
        _, body = call("posts.search", {"search": "%"})
        assert body["result"]["data"]["total"] == 0


class TestUpdate:
    def test_category_set_is_replaced(self, call, create_post, author):
        post = create_post(categoryIds=[1, 2])
        status, body = call("posts.update", {"id": post["id"], "categoryIds": [3]}, token=author[1])
        assert status == 200

        _, body = call("posts.getById", post["id"])
        assert _category_ids(body["result"]["data"]) == [3]

    def test_unchanged_title_keeps_slug(self, call, create_post, author):
        create_post(title="Shared title")
        second = create_post(title="Shared title")
        assert second["slug"] == "shared-title-1"

        _, body = call("posts.update", {"id": second["id"], "excerpt": "New excerpt"}, token=author[1])
        assert body["result"]["data"]["slug"] == "shared-title-1"

        _, body = call("posts.update", {"id": second["id"], "title": "Shared title"}, token=author[1])
        assert body["result"]["data"]["slug"] == "shared-title-1"

    def test_new_title_regenerates_slug(self, call, create_post, author):
        post = create_post()
        _, body = call("posts.update", {"id": post["id"], "title": "Autumn in Porto"}, token=author[1])
        assert body["result"]["data"]["slug"] == "autumn-in-porto"

    def test_cover_image_can_be_cleared(self, call, create_post, author):
        post = create_post(coverImage="https://cdn.example.com/a.jpg")
        assert post["coverImage"] == "https://cdn.example.com/a.jpg"
        _, body = call("posts.update", {"id": post["id"], "coverImage": None}, token=author[1])
        assert body["result"]["data"]["coverImage"] is None
        assert body["result"]["data"]["title"] == post["title"]

    def test_bare_id_update_is_rejected(self, call, create_post, author):
        post = create_post()
        status, body = call("posts.update", {"id": post["id"]}, token=author[1])
        assert status == 400
        assert body["error"]["data"]["validationErrors"][0]["field"] == "_form"

    def test_non_owner_is_forbidden(self, call, create_post, make_user):
        post = create_post()
        _, bob_token = make_user(name="Bob", email="bob@x.com")
        status, body = call("posts.update", {"id": post["id"], "title": "Mine now"}, token=bob_token)
        assert status == 403

    def test_failed_replace_leaves_previous_links(self, call, create_post, author, monkeypatch, session_factory):
        post = create_post(categoryIds=[1, 2])
        original = post_service.replace_post_categories

        def exploding_replace(db, post_id, category_ids):
            original(db, post_id, category_ids[:1])
            raise RuntimeError("connection dropped")

        monkeypatch.setattr(post_service, "replace_post_categories", exploding_replace)
        status, body = call("posts.update", {"id": post["id"], "categoryIds": [3, 2]}, token=author[1])
        assert status == 500
        assert body["error"]["message"] == "An unexpected error occurred"

        with session_factory() as session:
            links = session.execute(
                select(post_categories.c.category_id).where(post_categories.c.post_id == post["id"])
            ).scalars().all()
        assert sorted(links) == [1, 2]

        monkeypatch.setattr(post_service, "replace_post_categories", original)
        status, _ = call("posts.update", {"id": post["id"], "categoryIds": [3, 2]}, token=author[1])
        assert status == 200
        _, body = call("posts.getById", post["id"])
        assert _category_ids(body["result"]["data"]) == [2, 3]

    def test_assign_categories(self, call, create_post, author):
        post = create_post(categoryIds=[1])
        status, body = call("posts.assignCategories", {"postId": post["id"], "categoryIds": [2, 3]}, token=author[1])
        assert status == 200
        assert _category_ids(body["result"]["data"]) == [2, 3]


class TestDelete:
    def test_ownership_guard(self, call, create_post, make_user, author):
        post = create_post()
        _, bob_token = make_user(name="Bob", email="bob@x.com")

        status, body = call("posts.delete", post["id"])
        assert status == 401
        assert body["error"]["data"]["type"] == "UNAUTHORIZED"

        status, body = call("posts.delete", post["id"], token=bob_token)
        assert status == 403
        assert body["error"]["data"]["type"] == "FORBIDDEN"

        status, body = call("posts.delete", post["id"], token=author[1])
        assert status == 200
        assert body["result"]["data"] == {"id": post["id"]}

    def test_delete_cascades_links(self, call, create_post, author, session_factory):
        post = create_post(categoryIds=[1, 2])
        call("posts.delete", post["id"], token=author[1])

        with session_factory() as session:
            count = len(session.execute(select(post_categories)).all())
        assert count == 0

    def test_admin_may_delete_any_post(self, call, create_post, make_user):
        post = create_post()
        _, admin_token = make_user(name="Root", email="root@x.com", role="admin")
        status, _ = call("posts.delete", post["id"], token=admin_token)
        assert status == 200

    def test_missing_post_is_not_found(self, call, author):
        status, body = call("posts.delete", 12345, token=author[1])
        assert status == 404
