"""
Pytest configuration and fixtures for the blog platform API.

Service tests run against a throwaway SQLite database per test; API tests
drive a fully wired application through FastAPI's TestClient.
"""

import base64
from typing import Iterator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from blogapi.core.config import Settings
from blogapi.core.db import build_engine, build_session_factory, create_tables
from blogapi.core.mailer import EmailManager
from blogapi.core.security import TokenService
from blogapi.main import create_app
from blogapi.services.auth import AuthService
from blogapi.services.blogs import BlogsService
from blogapi.services.comments import CommentsService
from blogapi.services.posts import PostsService
from blogapi.services.reactions import ReactionService
from blogapi.services.sessions import DeviceRegistry
from blogapi.services.users import UsersService

ADMIN_AUTH = "Basic " + base64.b64encode(b"admin:qwerty").decode()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated to a temporary SQLite file, without Redis throttling."""
    return Settings(
        DEBUG=True,
        LOG_LEVEL="WARNING",
        SECRET_KEY="test-secret",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}",
        BASIC_AUTH_USERNAME="admin",
        BASIC_AUTH_PASSWORD="qwerty",
        MAIL_API_URL=None,
        RATE_LIMIT_ENABLED=False,
        TESTING_ENDPOINTS_ENABLED=True,
    )


# -----------------
# Service fixtures
# -----------------

@pytest_asyncio.fixture
async def session_factory(test_settings):
    engine = build_engine(test_settings)
    await create_tables(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def devices(session_factory) -> DeviceRegistry:
    return DeviceRegistry(session_factory)


@pytest.fixture
def reactions(session_factory) -> ReactionService:
    return ReactionService(session_factory)


@pytest.fixture
def comments(session_factory, reactions) -> CommentsService:
    return CommentsService(session_factory, reactions)


@pytest.fixture
def posts(session_factory, reactions, comments) -> PostsService:
    return PostsService(session_factory, reactions, comments)


@pytest.fixture
def blogs(session_factory, posts) -> BlogsService:
    return BlogsService(session_factory, posts)


@pytest.fixture
def users(session_factory, devices) -> UsersService:
    return UsersService(session_factory, devices)


@pytest.fixture
def tokens(test_settings) -> TokenService:
    return TokenService(test_settings)


@pytest.fixture
def auth(test_settings, session_factory, tokens, devices) -> AuthService:
    return AuthService(test_settings, session_factory, tokens, devices, EmailManager(test_settings))


@pytest_asyncio.fixture
async def post(blogs, posts):
    blog = await blogs.create_blog("tech", "all about tech", "https://tech.example.com")
    return await posts.create_post(blog.id, "first post", "short", "post body")


# -----------------
# API fixtures
# -----------------

@pytest.fixture
def client(test_settings) -> Iterator[TestClient]:
    app = create_app(test_settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": ADMIN_AUTH}


def create_user(client: TestClient, login: str, password: str = "password", email: str = None) -> dict:
    response = client.post(
        "/users",
        json={"login": login, "password": password, "email": email or f"{login}@example.com"},
        headers={"Authorization": ADMIN_AUTH},
    )
    assert response.status_code == 201, response.text
    return response.json()


def login(client: TestClient, login_or_email: str, password: str = "password", user_agent: str = "pytest") -> str:
    response = client.post(
        "/auth/login",
        json={"loginOrEmail": login_or_email, "password": password},
        headers={"User-Agent": user_agent},
    )
    assert response.status_code == 200, response.text
    return response.json()["accessToken"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_blog(client: TestClient, name: str = "blog") -> dict:
    response = client.post(
        "/blogs",
        json={"name": name, "description": "description", "websiteUrl": "https://anyurl.com"},
        headers={"Authorization": ADMIN_AUTH},
    )
    assert response.status_code == 201, response.text
    return response.json()


def create_post(client: TestClient, blog_id: str, title: str = "postTitle") -> dict:
    response = client.post(
        "/posts",
        json={"title": title, "shortDescription": "shortDescription", "content": "anyContent", "blogId": blog_id},
        headers={"Authorization": ADMIN_AUTH},
    )
    assert response.status_code == 201, response.text
    return response.json()
