from blogosphere.core.time import utcnow
from blogosphere.db.models import Post


def test_create_and_read_back(client, make_user, make_post):
    author, headers = make_user(email="writer@example.com", firstName="Ana", lastName="Ruiz")

    created = make_post(
        headers,
        title="  Markets today  ",
        content="Stocks went up.",
        tags=["stocks", "daily"],
        category="stock-market",
        status="published",
    )

    assert created["title"] == "Markets today"
    assert created["excerpt"] == "Stocks went up...."
    assert created["authorId"] == author["id"]
    assert created["authorName"] == "Ana Ruiz"
    assert created["authorEmail"] == "writer@example.com"
    assert created["views"] == 0
    assert created["likes"] == 0
    assert created["publishedAt"] is not None

    fetched = client.get(f"/api/posts/{created['id']}").json()
    for field in ("title", "content", "tags", "category", "status"):
        assert fetched[field] == created[field]


def test_create_requires_authentication(client):
    response = client.post("/api/posts", json={"title": "T", "content": "C"})

    assert response.status_code == 401


def test_create_rejects_unknown_category_and_status(client, make_user):
    _, headers = make_user()

    bad_category = client.post(
        "/api/posts", json={"title": "T", "content": "C", "category": "sports"}, headers=headers
    )
    bad_status = client.post(
        "/api/posts", json={"title": "T", "content": "C", "status": "archived"}, headers=headers
    )

    assert bad_category.status_code == 400
    assert bad_category.json()["message"] == "Invalid category"
    assert bad_status.status_code == 400
    assert bad_status.json()["message"] == "Invalid status"


def test_create_defaults_to_draft(client, make_user):
    _, headers = make_user()

    response = client.post("/api/posts", json={"title": "T", "content": "C"}, headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "draft"
    assert body["category"] == "technology"
    assert body["publishedAt"] is None


def test_explicit_excerpt_is_kept(client, make_user, make_post):
    _, headers = make_user()

    post = make_post(headers, content="x" * 400, excerpt=" Short summary ")

    assert post["excerpt"] == "Short summary"


def test_draft_visibility(client, make_user, make_admin, make_post):
    _, author_headers = make_user(email="author@example.com")
    _, other_headers = make_user(email="other@example.com")
    _, admin_headers = make_admin()
    draft = make_post(author_headers)

    url = f"/api/posts/{draft['id']}"
    anonymous = client.get(url)
    stranger = client.get(url, headers=other_headers)

    assert anonymous.status_code == 403
    assert anonymous.json()["message"] == "Post not accessible"
    assert stranger.status_code == 403
    assert client.get(url, headers=author_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 200


def test_get_unknown_post(client):
    response = client.get("/api/posts/12345")

    assert response.status_code == 404
    assert response.json()["message"] == "Post not found"


def test_public_list_only_shows_published(client, make_user, make_post):
    _, headers = make_user()
    make_post(headers, title="draft one")
    published = make_post(headers, title="live one", status="published")

    body = client.get("/api/posts").json()

    assert [p["id"] for p in body["posts"]] == [published["id"]]
    assert body["pagination"]["totalPosts"] == 1


def test_public_list_accepts_legacy_published_flag(client, make_user, db):
    author, _ = make_user()
    now = utcnow()
    db.add(Post(
        title="Old post",
        content="from the old days",
        category="business",
        status="draft",
        published=True,
        author_id=author["id"],
        created_at=now,
        updated_at=now,
    ))
    db.commit()

    body = client.get("/api/posts").json()

    assert [p["title"] for p in body["posts"]] == ["Old post"]


def test_pagination(client, make_user, make_post):
    _, headers = make_user()
    ids = [make_post(headers, title=f"post {i}", status="published")["id"] for i in range(5)]

    first = client.get("/api/posts?page=1&limit=2").json()
    last = client.get("/api/posts?page=3&limit=2").json()
    beyond = client.get("/api/posts?page=4&limit=2").json()

    assert [p["id"] for p in first["posts"]] == [ids[4], ids[3]]
    assert first["pagination"] == {
        "currentPage": 1,
        "totalPages": 3,
        "totalPosts": 5,
        "hasNextPage": True,
        "hasPrevPage": False,
    }
    assert [p["id"] for p in last["posts"]] == [ids[0]]
    assert last["pagination"]["hasNextPage"] is False
    assert last["pagination"]["hasPrevPage"] is True
    assert beyond["posts"] == []


def test_pagination_counts_only_visible_posts(client, make_user, make_post):
    _, headers = make_user()
    for i in range(3):
        make_post(headers, title=f"draft {i}")
    for i in range(3):
        make_post(headers, title=f"live {i}", status="published")

    second_page = client.get("/api/posts?page=2&limit=2").json()

    assert len(second_page["posts"]) == 1
    assert second_page["pagination"]["totalPosts"] == 3
    assert second_page["pagination"]["totalPages"] == 2


def test_filter_by_author_and_tag(client, make_user, make_post):
    alice, alice_headers = make_user(email="alice@example.com")
    _, bob_headers = make_user(email="bob@example.com")
    tagged = make_post(alice_headers, tags=["ai"], status="published")
    make_post(alice_headers, tags=["markets"], status="published")
    make_post(bob_headers, tags=["ai"], status="published")

    by_author = client.get(f"/api/posts?author={alice['id']}").json()
    by_both = client.get(f"/api/posts?author={alice['id']}&tag=ai").json()

    assert len(by_author["posts"]) == 2
    assert [p["id"] for p in by_both["posts"]] == [tagged["id"]]


def test_my_posts_and_drafts(client, make_user, make_post):
    _, headers = make_user()
    draft = make_post(headers, title="draft")
    published = make_post(headers, title="live", status="published")

    mine = client.get("/api/posts/my-posts", headers=headers).json()["data"]["posts"]
    drafts = client.get("/api/posts/my-drafts", headers=headers).json()["data"]["posts"]

    assert [p["id"] for p in mine] == [published["id"], draft["id"]]
    assert [p["id"] for p in drafts] == [draft["id"]]


def test_user_posts_hide_drafts_from_others(client, make_user, make_post):
    author, headers = make_user(email="author@example.com")
    _, other_headers = make_user(email="other@example.com")
    make_post(headers, title="draft")
    make_post(headers, title="live", status="published")

    url = f"/api/posts/user/{author['id']}?includeUnpublished=true"
    own = client.get(url, headers=headers).json()["posts"]
    foreign = client.get(url, headers=other_headers).json()["posts"]

    assert len(own) == 2
    assert [p["title"] for p in foreign] == ["live"]


def test_update_post(client, make_user, make_post):
    _, headers = make_user()
    post = make_post(headers)

    response = client.put(
        f"/api/posts/{post['id']}",
        json={"title": "New title", "tags": ["fresh"]},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "New title"
    assert body["tags"] == ["fresh"]
    assert body["content"] == post["content"]


def test_update_by_other_user_is_forbidden(client, make_user, make_admin, make_post):
    _, headers = make_user(email="author@example.com")
    _, other_headers = make_user(email="other@example.com")
    _, admin_headers = make_admin()
    post = make_post(headers)

    url = f"/api/posts/{post['id']}"
    assert client.put(url, json={"title": "hijack"}, headers=other_headers).status_code == 403
    assert client.put(url, json={"title": "moderated"}, headers=admin_headers).status_code == 200


def test_update_cannot_revert_published_post(client, make_user, make_post):
    _, headers = make_user()
    post = make_post(headers, status="published")

    url = f"/api/posts/{post['id']}"
    by_status = client.put(url, json={"status": "draft"}, headers=headers)
    by_flag = client.put(url, json={"published": False}, headers=headers)

    assert by_status.status_code == 400
    assert by_flag.status_code == 400
    assert client.get(url).json()["status"] == "published"


def test_update_publishes_with_legacy_flag(client, make_user, make_post):
    _, headers = make_user()
    post = make_post(headers)

    response = client.put(f"/api/posts/{post['id']}", json={"published": True}, headers=headers)

    body = response.json()
    assert body["status"] == "published"
    assert body["publishedAt"] is not None


def test_publish_draft_once(client, make_user, make_post):
    _, headers = make_user()
    post = make_post(headers)

    url = f"/api/posts/{post['id']}/publish"
    first = client.put(url, headers=headers)
    second = client.put(url, headers=headers)

    assert first.status_code == 200
    assert first.json() == {"success": True, "message": "Post published successfully"}
    assert second.status_code == 400
    assert second.json()["message"] == "Post is not a draft"

    published = client.get(f"/api/posts/{post['id']}").json()
    assert published["status"] == "published"
    assert published["publishedAt"] is not None


def test_only_author_can_publish(client, make_user, make_admin, make_post):
    _, headers = make_user()
    _, admin_headers = make_admin()
    post = make_post(headers)

    response = client.put(f"/api/posts/{post['id']}/publish", headers=admin_headers)

    assert response.status_code == 403


def test_delete_post(client, make_user, make_post):
    _, headers = make_user(email="author@example.com")
    _, other_headers = make_user(email="other@example.com")
    post = make_post(headers, status="published")

    url = f"/api/posts/{post['id']}"
    assert client.delete(url, headers=other_headers).status_code == 403

    response = client.delete(url, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Post deleted successfully"}
    assert client.get(url).status_code == 404
    assert client.delete(url, headers=headers).status_code == 404
