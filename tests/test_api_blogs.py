from conftest import create_blog, create_post


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_blog_crud(client, admin_headers):
    blog = create_blog(client, "first")
    assert blog["isMembership"] is False
    assert blog["websiteUrl"] == "https://anyurl.com"

    assert client.get(f"/blogs/{blog['id']}").json()["name"] == "first"

    body = {"name": "renamed", "description": "new", "websiteUrl": "https://other.com"}
    assert client.put(f"/blogs/{blog['id']}", json=body, headers=admin_headers).status_code == 204
    assert client.get(f"/blogs/{blog['id']}").json()["name"] == "renamed"

    assert client.delete(f"/blogs/{blog['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/blogs/{blog['id']}").status_code == 404
    assert client.delete(f"/blogs/{blog['id']}", headers=admin_headers).status_code == 404


def test_blog_writes_require_basic_auth(client):
    body = {"name": "blog", "description": "description", "websiteUrl": "https://anyurl.com"}
    response = client.post("/blogs", json=body)
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Basic"
    assert client.post("/blogs", json=body, headers={"Authorization": "Basic YWRtaW46d3Jvbmc="}).status_code == 401


def test_blog_validation_errors(client, admin_headers):
    body = {"name": "x" * 16, "description": "description", "websiteUrl": "ftp://nope"}
    response = client.post("/blogs", json=body, headers=admin_headers)
    assert response.status_code == 400
    fields = sorted(e["field"] for e in response.json()["errorsMessages"])
    assert fields == ["name", "websiteUrl"]


def test_list_blogs_search_and_paging(client):
    for name in ("Alpha", "alpine", "beta"):
        create_blog(client, name)

    page = client.get("/blogs", params={"searchNameTerm": "AL", "pageSize": 1, "sortBy": "name", "sortDirection": "asc"}).json()
    assert page["totalCount"] == 2
    assert page["pagesCount"] == 2
    assert page["page"] == 1
    assert page["pageSize"] == 1
    assert [b["name"] for b in page["items"]] == ["Alpha"]

    # unknown sort field falls back to creation date, newest first
    newest = client.get("/blogs", params={"sortBy": "bogus"}).json()
    assert [b["name"] for b in newest["items"]] == ["beta", "alpine", "Alpha"]


def test_paging_parameters_are_validated(client):
    response = client.get("/blogs", params={"pageNumber": 0})
    assert response.status_code == 400
    assert response.json()["errorsMessages"][0]["field"] == "pageNumber"


def test_blog_posts(client, admin_headers):
    blog = create_blog(client, "tech")
    body = {"title": "hello", "shortDescription": "short", "content": "content"}
    response = client.post(f"/blogs/{blog['id']}/posts", json=body, headers=admin_headers)
    assert response.status_code == 201
    post = response.json()
    assert post["blogName"] == "tech"
    assert post["extendedLikesInfo"] == {"likesCount": 0, "dislikesCount": 0, "myStatus": "None", "newestLikes": []}

    page = client.get(f"/blogs/{blog['id']}/posts").json()
    assert [p["id"] for p in page["items"]] == [post["id"]]

    assert client.get("/blogs/unknown/posts").status_code == 404
    assert client.post("/blogs/unknown/posts", json=body, headers=admin_headers).status_code == 404


def test_renaming_blog_updates_post_blog_name(client, admin_headers):
    blog = create_blog(client, "old")
    post = create_post(client, blog["id"])
    body = {"name": "new", "description": "description", "websiteUrl": "https://anyurl.com"}
    client.put(f"/blogs/{blog['id']}", json=body, headers=admin_headers)
    assert client.get(f"/posts/{post['id']}").json()["blogName"] == "new"


def test_deleting_blog_removes_its_posts(client, admin_headers):
    blog = create_blog(client)
    post = create_post(client, blog["id"])
    client.delete(f"/blogs/{blog['id']}", headers=admin_headers)
    assert client.get(f"/posts/{post['id']}").status_code == 404
    assert client.get("/posts").json()["totalCount"] == 0


def test_post_crud(client, admin_headers):
    blog = create_blog(client)
    post = create_post(client, blog["id"], title="first")

    body = {"title": "edited", "shortDescription": "s", "content": "c", "blogId": blog["id"]}
    assert client.put(f"/posts/{post['id']}", json=body, headers=admin_headers).status_code == 204
    assert client.get(f"/posts/{post['id']}").json()["title"] == "edited"
    assert client.put("/posts/unknown", json=body, headers=admin_headers).status_code == 404

    assert client.delete(f"/posts/{post['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/posts/{post['id']}").status_code == 404


def test_post_with_unknown_blog_is_rejected(client, admin_headers):
    body = {"title": "t", "shortDescription": "s", "content": "c", "blogId": "missing"}
    response = client.post("/posts", json=body, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"errorsMessages": [{"message": "blog by blogId not found", "field": "blogId"}]}


def test_post_content_is_sanitized(client, admin_headers):
    blog = create_blog(client)
    body = {"title": "t", "shortDescription": "s", "content": "<b>bold</b> text", "blogId": blog["id"]}
    post = client.post("/posts", json=body, headers=admin_headers).json()
    assert post["content"] == "bold text"


def test_wipe_all_data(client):
    blog = create_blog(client)
    create_post(client, blog["id"])
    assert client.delete("/testing/all-data").status_code == 204
    assert client.get("/blogs").json()["totalCount"] == 0
    assert client.get("/posts").json()["items"] == []
