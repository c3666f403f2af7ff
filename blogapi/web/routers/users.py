from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from blogapi.core.errors import ValidationFailed
from blogapi.core.models.user import User
from blogapi.core.query import PageRequest, Sort
from blogapi.core.schemas import Paginator, UserInput, UserView
from blogapi.core.security import require_admin
from blogapi.services.auth import AuthService
from blogapi.services.users import UsersService, user_view
from blogapi.web.deps import get_auth_service, get_users_service, page_params, reject_taken, sort_for, sort_params

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=Paginator[UserView])
async def list_users(
    search_login_term: Optional[str] = Query(None, alias="searchLoginTerm"),
    search_email_term: Optional[str] = Query(None, alias="searchEmailTerm"),
    page: PageRequest = Depends(page_params),
    sort: Sort = Depends(sort_params),
    users: UsersService = Depends(get_users_service),
):
    # password hashes and confirmation codes are never sortable
    sort = sort_for(User, sort)
    if sort.field not in {"login", "email", "created_at"}:
        sort = Sort(descending=sort.descending)
    return await users.list_users(page, sort, search_login_term, search_email_term)


@router.post("", response_model=UserView, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserInput, auth: AuthService = Depends(get_auth_service)):
    await reject_taken(auth, body.login, body.email)
    # users created by an administrator skip email confirmation
    user = await auth.create_user(body.login, body.password, body.email, confirmed=True)
    if user is None:
        await reject_taken(auth, body.login, body.email)
        raise ValidationFailed.field("login", "login already exists")
    return user_view(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, users: UsersService = Depends(get_users_service)):
    if not await users.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
