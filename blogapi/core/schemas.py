from datetime import datetime
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

from blogapi.core.models.interaction import LikeStatus
from blogapi.core.query import Page

T = TypeVar("T")

WEBSITE_URL_PATTERN = r"^https://([a-zA-Z0-9_-]+\.)+[a-zA-Z0-9_-]+(/[a-zA-Z0-9_-]+)*/?$"
LOGIN_PATTERN = r"^[a-zA-Z0-9_-]*$"
EMAIL_PATTERN = r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$"


def text(min_length: int = 1, max_length: Optional[int] = None, pattern: Optional[str] = None):
    return Annotated[
        str,
        StringConstraints(strip_whitespace=True, min_length=min_length, max_length=max_length, pattern=pattern),
    ]


def secret(min_length: int = 1, max_length: Optional[int] = None):
    # passwords are taken verbatim, surrounding spaces included
    return Annotated[str, StringConstraints(min_length=min_length, max_length=max_length)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Paginator(CamelModel, Generic[T]):
    pages_count: int
    page: int
    page_size: int
    total_count: int
    items: List[T]

    @classmethod
    def of(cls, page: Page, items: List[T]) -> "Paginator[T]":
        return cls(
            pages_count=page.pages_count,
            page=page.page,
            page_size=page.page_size,
            total_count=page.total_count,
            items=items,
        )


# -----------------
# Reactions
# -----------------

class LikesInfo(CamelModel):
    likes_count: int = 0
    dislikes_count: int = 0
    my_status: LikeStatus = LikeStatus.NONE


class NewestLike(CamelModel):
    added_at: datetime
    user_id: str
    login: Optional[str] = None


class ExtendedLikesInfo(LikesInfo):
    newest_likes: List[NewestLike] = []


class LikeStatusInput(CamelModel):
    like_status: LikeStatus


# -----------------
# Blogs & posts
# -----------------

class BlogInput(CamelModel):
    name: text(max_length=15)
    description: text(max_length=500)
    website_url: text(max_length=100, pattern=WEBSITE_URL_PATTERN)


class BlogView(CamelModel):
    id: str
    name: str
    description: str
    website_url: str
    created_at: datetime
    is_membership: bool


class BlogPostInput(CamelModel):
    title: text(max_length=30)
    short_description: text(max_length=100)
    content: text(max_length=1000)


class PostInput(BlogPostInput):
    blog_id: text(max_length=100)


class PostView(CamelModel):
    id: str
    title: str
    short_description: str
    content: str
    blog_id: str
    blog_name: str
    created_at: datetime
    extended_likes_info: ExtendedLikesInfo


# -----------------
# Comments
# -----------------

class CommentInput(CamelModel):
    content: text(min_length=20, max_length=300)


class CommentatorInfo(CamelModel):
    user_id: str
    user_login: str


class CommentView(CamelModel):
    id: str
    content: str
    commentator_info: CommentatorInfo
    created_at: datetime
    likes_info: LikesInfo


# -----------------
# Users & auth
# -----------------

class UserInput(CamelModel):
    login: text(min_length=3, max_length=10, pattern=LOGIN_PATTERN)
    password: secret(min_length=6, max_length=20)
    email: text(pattern=EMAIL_PATTERN)


class UserView(CamelModel):
    id: str
    login: str
    email: str
    created_at: datetime


class LoginInput(CamelModel):
    login_or_email: text()
    password: secret()


class AccessTokenView(CamelModel):
    access_token: str


class MeView(CamelModel):
    email: str
    login: str
    user_id: str


class ConfirmationCodeInput(CamelModel):
    code: text()


class EmailInput(CamelModel):
    email: text(pattern=EMAIL_PATTERN)


class NewPasswordInput(CamelModel):
    new_password: secret(min_length=6, max_length=20)
    recovery_code: text()


class DeviceView(CamelModel):
    ip: str
    title: str
    last_active_date: datetime
    device_id: str
