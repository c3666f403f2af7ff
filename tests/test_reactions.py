import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from blogapi.core.models.interaction import EntityType, LikeStatus
from blogapi.services.reactions import ReactionRecord, ReactionSet, project, project_extended

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def record(user_id: str, minutes: int = 0, login: str = None) -> ReactionRecord:
    return ReactionRecord(user_id=user_id, created_at=T0 + timedelta(minutes=minutes), login=login or user_id)


# -----------------
# Projection
# -----------------

def test_project_empty_set():
    info = project(ReactionSet(), None)
    assert info.likes_count == 0
    assert info.dislikes_count == 0
    assert info.my_status is LikeStatus.NONE


def test_project_counts_and_viewer_status():
    reactions = ReactionSet(likes=[record("u1"), record("u2")], dislikes=[record("u3")], none=[record("u4")])

    assert project(reactions, "u1").my_status is LikeStatus.LIKE
    assert project(reactions, "u3").my_status is LikeStatus.DISLIKE
    assert project(reactions, "u4").my_status is LikeStatus.NONE
    assert project(reactions, "stranger").my_status is LikeStatus.NONE

    info = project(reactions, None)
    assert (info.likes_count, info.dislikes_count) == (2, 1)


def test_project_dislike_wins_when_user_in_both_buckets():
    reactions = ReactionSet(likes=[record("u1")], dislikes=[record("u1")])
    assert project(reactions, "u1").my_status is LikeStatus.DISLIKE


def test_project_extended_keeps_three_newest_likes():
    reactions = ReactionSet(likes=[record(f"u{i}", minutes=i) for i in range(5)], dislikes=[record("d1", minutes=10)])
    info = project_extended(reactions, "u0")

    assert info.likes_count == 5
    assert info.my_status is LikeStatus.LIKE
    assert [like.user_id for like in info.newest_likes] == ["u4", "u3", "u2"]
    assert info.newest_likes[0].added_at == T0 + timedelta(minutes=4)


def test_project_extended_serializes_camel_case():
    info = project_extended(ReactionSet(likes=[record("u1", login="alice")]), None)
    data = info.model_dump(by_alias=True)
    assert data["likesCount"] == 1
    assert data["myStatus"] == "None"
    assert data["newestLikes"][0]["login"] == "alice"
    assert "addedAt" in data["newestLikes"][0]


# -----------------
# ReactionService
# -----------------

async def _set(reactions, user_id, entity_id, status):
    return await reactions.set_reaction(user_id, EntityType.POST, entity_id, status)


async def _state(reactions, session_factory, entity_id) -> ReactionSet:
    async with session_factory() as session:
        return (await reactions.load(session, EntityType.POST, [entity_id]))[entity_id]


@pytest.mark.asyncio
async def test_like_puts_user_in_likes(reactions, session_factory, post):
    assert await _set(reactions, "u1", post.id, LikeStatus.LIKE) is True
    state = await _state(reactions, session_factory, post.id)
    assert [r.user_id for r in state.likes] == ["u1"]
    assert state.dislikes == [] and state.none == []


@pytest.mark.asyncio
async def test_like_then_dislike_moves_user(reactions, session_factory, post):
    await _set(reactions, "u1", post.id, LikeStatus.LIKE)
    await _set(reactions, "u1", post.id, LikeStatus.DISLIKE)

    info = project(await _state(reactions, session_factory, post.id), "u1")
    assert (info.likes_count, info.dislikes_count) == (0, 1)
    assert info.my_status is LikeStatus.DISLIKE


@pytest.mark.asyncio
async def test_like_then_none_parks_user_in_none_bucket(reactions, session_factory, post):
    await _set(reactions, "u1", post.id, LikeStatus.LIKE)
    await _set(reactions, "u1", post.id, LikeStatus.NONE)

    state = await _state(reactions, session_factory, post.id)
    assert state.likes == [] and state.dislikes == []
    assert [r.user_id for r in state.none] == ["u1"]
    assert project(state, "u1").my_status is LikeStatus.NONE


@pytest.mark.asyncio
async def test_like_dislike_none_sequence(reactions, session_factory, post):
    for status in (LikeStatus.LIKE, LikeStatus.DISLIKE, LikeStatus.NONE):
        assert await _set(reactions, "u1", post.id, status) is True

    state = await _state(reactions, session_factory, post.id)
    assert (len(state.likes), len(state.dislikes), len(state.none)) == (0, 0, 1)
    assert project(state, "u1").my_status is LikeStatus.NONE


@pytest.mark.asyncio
async def test_none_without_prior_reaction_is_noop(reactions, session_factory, post):
    assert await _set(reactions, "u1", post.id, LikeStatus.NONE) is True
    state = await _state(reactions, session_factory, post.id)
    assert state.likes == [] and state.dislikes == [] and state.none == []


@pytest.mark.asyncio
async def test_repeated_like_is_idempotent(reactions, session_factory, post):
    await _set(reactions, "u1", post.id, LikeStatus.LIKE)
    await _set(reactions, "u1", post.id, LikeStatus.LIKE)

    state = await _state(reactions, session_factory, post.id)
    assert len(state.likes) == 1
    assert project(state, "u1").likes_count == 1


@pytest.mark.asyncio
async def test_counts_across_users(reactions, session_factory, post):
    await _set(reactions, "u1", post.id, LikeStatus.LIKE)
    await _set(reactions, "u2", post.id, LikeStatus.LIKE)
    await _set(reactions, "u3", post.id, LikeStatus.DISLIKE)

    info = project(await _state(reactions, session_factory, post.id), "u2")
    assert (info.likes_count, info.dislikes_count) == (2, 1)
    assert info.my_status is LikeStatus.LIKE


@pytest.mark.asyncio
async def test_missing_entity_reports_failure(reactions):
    assert await _set(reactions, "u1", "no-such-post", LikeStatus.LIKE) is False
    assert await reactions.set_reaction("u1", EntityType.COMMENT, "no-such-comment", LikeStatus.DISLIKE) is False


@pytest.mark.asyncio
async def test_newest_likes_carry_login(reactions, session_factory, auth, posts, post):
    alice = await auth.create_user("alice", "secret1", "alice@example.com", confirmed=True)
    await _set(reactions, alice.id, post.id, LikeStatus.LIKE)

    view = await posts.get_post(post.id, viewer_id=alice.id)
    assert view.extended_likes_info.my_status is LikeStatus.LIKE
    assert [(like.user_id, like.login) for like in view.extended_likes_info.newest_likes] == [(alice.id, "alice")]


@pytest.mark.asyncio
async def test_load_returns_empty_sets_for_unreacted_entities(reactions, session_factory):
    async with session_factory() as session:
        sets = await reactions.load(session, EntityType.COMMENT, ["a", "b"])
    assert set(sets) == {"a", "b"}
    assert all(s.likes == [] and s.dislikes == [] and s.none == [] for s in sets.values())


@pytest.mark.asyncio
async def test_concurrent_likes_from_distinct_users(reactions, session_factory, post):
    user_ids = [f"user-{i}" for i in range(10)]
    results = await asyncio.gather(*(_set(reactions, u, post.id, LikeStatus.LIKE) for u in user_ids))
    assert results == [True] * len(user_ids)

    state = await _state(reactions, session_factory, post.id)
    assert sorted(r.user_id for r in state.likes) == sorted(user_ids)
    assert project(state, None).likes_count == len(user_ids)


@pytest.mark.asyncio
async def test_same_user_racing_ends_in_one_bucket(reactions, session_factory, post):
    statuses = [LikeStatus.LIKE, LikeStatus.DISLIKE] * 5
    results = await asyncio.gather(*(_set(reactions, "u1", post.id, s) for s in statuses))
    assert results == [True] * len(statuses)

    state = await _state(reactions, session_factory, post.id)
    memberships = [r for bucket in (state.likes, state.dislikes, state.none) for r in bucket if r.user_id == "u1"]
    assert len(memberships) == 1
    info = project(state, "u1")
    assert info.likes_count + info.dislikes_count == 1
