from typing import Literal

from fastapi import Query, Request
from pydantic.alias_generators import to_snake

from blogapi.core.errors import ValidationFailed
from blogapi.core.query import PageRequest, Sort, sortable
from blogapi.services.auth import AuthService
from blogapi.services.blogs import BlogsService
from blogapi.services.comments import CommentsService
from blogapi.services.posts import PostsService
from blogapi.services.sessions import DeviceRegistry
from blogapi.services.users import UsersService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_blogs_service(request: Request) -> BlogsService:
    return request.app.state.blogs_service


def get_posts_service(request: Request) -> PostsService:
    return request.app.state.posts_service


def get_comments_service(request: Request) -> CommentsService:
    return request.app.state.comments_service


def get_users_service(request: Request) -> UsersService:
    return request.app.state.users_service


def get_device_registry(request: Request) -> DeviceRegistry:
    return request.app.state.device_registry


def page_params(
    page_number: int = Query(1, alias="pageNumber", ge=1),
    page_size: int = Query(10, alias="pageSize", ge=1, le=100),
) -> PageRequest:
    return PageRequest(number=page_number, size=page_size)


def sort_params(
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
) -> Sort:
    # column check happens per model, see ``sort_for``
    return Sort(field=to_snake(sort_by), descending=sort_direction == "desc")


def sort_for(model, sort: Sort) -> Sort:
    """``sort`` with unknown columns of ``model`` replaced by ``created_at``."""
    return Sort(field=sortable(model, sort.field), descending=sort.descending)


def client_ip(request: Request) -> str:
    # peer address only; behind a proxy run uvicorn with --proxy-headers
    return request.client.host if request.client else "unknown"


def device_name(request: Request) -> str:
    return (request.headers.get("user-agent") or "Unknown device")[:255]


async def reject_taken(auth: AuthService, login: str, email: str) -> None:
    """Raise a 400 naming the login or email that is already registered."""
    taken = await auth.find_taken_field(login, email)
    if taken:
        raise ValidationFailed.field(taken, f"{taken} already exists")
