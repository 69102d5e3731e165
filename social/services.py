"""
================================================================================
LINKWORK - MUTATION RULES
================================================================================

@file        services.py
@description Post, comment, like and connection operations

Each operation resolves the entities it touches and runs its existence and
ownership checks before the first write. Failures are raised as ApiError
subclasses and rendered by ApiErrorMiddleware.

CONCURRENCY
================================================================================
No in-process locks. Whole-record fields are last-writer-wins. Members of
collections are always removed by identity:
    - likes and connections: M2M rows keyed by (owner, member)
    - comments: DELETE WHERE id = <comment> AND post = <post>
Connecting and disconnecting are two independent writes, one per user.
================================================================================
"""

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from .blobs import blob_store
from .errors import Forbidden, InvalidArgument, NotFound
from .models import Comment, Post, User
from .utils import parse_id


logger = logging.getLogger(__name__)

MISSING = object()


def _posts():
    return Post.objects.select_related("image").prefetch_related("likes", "comments")


def get_post(post_id):
    post = _posts().filter(pk=parse_id(post_id, "post id")).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def get_user(user_id):
    user = (
        User.objects.select_related("avatar")
        .prefetch_related("connections")
        .filter(pk=parse_id(user_id, "user id"))
        .first()
    )
    if user is None:
        raise NotFound("User not found")
    return user


def _refresh(post):
    return get_post(post.pk)


# ============================================================================
# POSTS
# ============================================================================

def create_post(author, text=None, image=None):
    """
    Create a post for an already resolved author.

    The image is stored before the post row. If the row cannot be written the
    stored image is discarded again.
    """
    stored = blob_store.store(image, getattr(image, "content_type", None)) if image else None
    try:
        with transaction.atomic():
            post = Post.objects.create(
                user=author,
                name=author.name,
                text=text or "",
                image=stored,
            )
    except DatabaseError:
        if stored is not None:
            blob_store.discard(stored.pk)
        raise
    logger.info(f"Post {post.pk} created by {author.pk}")
    return _refresh(post)


def list_posts():
    return list(_posts().order_by("-created_at", "-pk"))


def toggle_like(post_id, user):
    """Add the user to the post's likes, or remove them if already present."""
    post = get_post(post_id)
    if post.likes.filter(pk=user.pk).exists():
        post.likes.remove(user)
    else:
        post.likes.add(user)
    return _refresh(post)


def edit_post(post_id, user, text=MISSING, image=None, remove_image=False):
    post = get_post(post_id)
    if post.user_id != user.pk:
        raise Forbidden()

    if text is not MISSING:
        post.text = text

    if remove_image and post.image_id:
        blob_store.discard(post.image_id)
        post.image = None

    if image:
        if post.image_id:
            blob_store.discard(post.image_id)
            post.image = None
        post.image = blob_store.store(image, getattr(image, "content_type", None))

    post.save()
    return _refresh(post)


def delete_post(post_id, user):
    post = get_post(post_id)
    if post.user_id != user.pk:
        raise Forbidden()
    blob_store.discard(post.image_id)
    post.delete()
    logger.info(f"Post {post_id} deleted by {user.pk}")


# ============================================================================
# COMMENTS
# ============================================================================

def add_comment(post_id, user, text):
    post = get_post(post_id)
    author = User.objects.filter(pk=user.pk).first()
    if author is None:
        raise NotFound("User not found")
    return Comment.objects.create(
        post=post,
        user=author,
        name=author.name,
        text=text or "",
    )


def delete_comment(post_id, comment_id, user):
    """
    Remove one comment from a post.

    Allowed for the comment's author and for the post's owner. The delete is
    keyed on the comment id, so concurrent deletes of other comments on the
    same post cannot affect it.
    """
    post = get_post(post_id)
    comment = post.comments.filter(pk=parse_id(comment_id, "comment id")).first()
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user.pk and post.user_id != user.pk:
        raise Forbidden()
    Comment.objects.filter(pk=comment.pk, post_id=post.pk).delete()
    return _refresh(post)


# ============================================================================
# CONNECTIONS
# ============================================================================

def _resolve_pair(user, target_id, verb):
    target_pk = parse_id(target_id, "user id")
    if target_pk == user.pk:
        raise InvalidArgument(f"Cannot {verb} yourself")
    me = User.objects.filter(pk=user.pk).first()
    target = User.objects.filter(pk=target_pk).first()
    if me is None or target is None:
        raise NotFound("User not found")
    return me, target


def connect(user, target_id):
    me, target = _resolve_pair(user, target_id, "connect to")
    # Two independent writes; add() skips rows that already exist.
    me.connections.add(target)
    target.connections.add(me)
    logger.info(f"{me.pk} connected with {target.pk}")
    return target


def disconnect(user, target_id):
    me, target = _resolve_pair(user, target_id, "disconnect from")
    me.connections.remove(target)
    target.connections.remove(me)
    logger.info(f"{me.pk} disconnected from {target.pk}")
    return target


def suggestions(user):
    """
    Every other user the caller is not connected to, with mutual counts.

    Ordered by mutual count (highest first), then by registration date and
    id, which is stable for a given snapshot.
    """
    mine = set(
        User.connections.through.objects
        .filter(from_user_id=user.pk)
        .values_list("to_user_id", flat=True)
    )
    candidates = (
        User.objects.exclude(pk=user.pk)
        .exclude(pk__in=mine)
        .select_related("avatar")
        .prefetch_related("connections")
        .order_by("date_joined", "pk")
    )
    results = []
    for candidate in candidates:
        candidate.mutual_count = len(candidate.connection_ids() & mine)
        results.append(candidate)
    results.sort(key=lambda c: -c.mutual_count)
    return results


# ============================================================================
# PROFILES & ACCOUNTS
# ============================================================================

def get_profile(user_id):
    user = get_user(user_id)
    posts = list(_posts().filter(user=user).order_by("-created_at", "-pk"))
    return user, posts


def update_profile(user, target_id, name=None, bio=None, avatar=None):
    target_pk = parse_id(target_id, "user id")
    if target_pk != user.pk:
        raise Forbidden()
    profile = get_user(target_pk)

    if name:
        profile.name = name
    if bio is not None:
        profile.bio = bio
    try:
        profile.full_clean(exclude=["password", "avatar"])
    except ValidationError as e:
        raise InvalidArgument(" ".join(e.messages))

    if avatar:
        previous = profile.avatar_id
        profile.avatar = blob_store.store(avatar, getattr(avatar, "content_type", None))
        if previous:
            blob_store.discard(previous)

    profile.save()
    return get_user(profile.pk)


def delete_account(user, target_id):
    """
    Delete a user and everything hanging off it.

    Posts (and their images) go first, then the user's id is pulled from
    every connection set, then the avatar. The user row is removed last so
    an interrupted cascade leaves the account visible.
    """
    target_pk = parse_id(target_id, "user id")
    if target_pk != user.pk:
        raise Forbidden()
    account = User.objects.filter(pk=target_pk).first()
    if account is None:
        raise NotFound("User not found")

    for post in Post.objects.filter(user=account).only("pk", "image"):
        blob_store.discard(post.image_id)
        post.delete()

    User.connections.through.objects.filter(to_user_id=account.pk).delete()

    blob_store.discard(account.avatar_id)

    account.delete()
    logger.info(f"Account {target_pk} deleted")
