"""
================================================================================
LINKWORK - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for users, posts, comments and stored files

MODULE PURPOSE
================================================================================
1. Identity
   - User (AbstractUser extension, email login, symmetric connections)

2. Content
   - Post (text, optional image, set of likes)
   - Comment (keyed by id, attached to a post, newest first)

3. Blobs
   - StoredFile (metadata for binary content kept in the default storage)

MODEL RELATIONSHIPS
================================================================================
User (N) <─────> (N) User        connections, one row per direction
User (1) ──────> (N) Post
Post (1) ──────> (N) Comment
Post (N) <─────> (N) User        likes
Post/User ─────> (1) StoredFile  image / avatar

CONSISTENCY NOTES
================================================================================
- Connections are stored as two directed rows (A→B and B→A) written
  independently. A failure between the two writes leaves a one-way edge
  until the request is retried.
- Author names on posts and comments are copied at write time and are not
  updated when the user renames.
- Comments are removed by primary key, never by position.
================================================================================
"""

import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.urls import reverse


# ============================================================================
# SECTION 1: BLOBS
# ============================================================================

class StoredFile(models.Model):
    """
    Metadata for a blob held in the default file storage.

    The row is only created after the bytes were written successfully, so an
    id that resolves here always has content behind it.

    Attributes:
        id (UUIDField): Blob reference handed out to clients
        name (CharField): Name of the file inside the storage backend
        content_type (CharField): MIME type sent back when streaming
        size (PositiveBigIntegerField): Length in bytes
        original_name (CharField): Filename supplied by the uploader
        created_at (DateTimeField): Upload timestamp
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        unique=True,
        help_text="Path of the file inside the storage backend"
    )
    content_type = models.CharField(
        max_length=100,
        default="application/octet-stream",
        help_text="MIME type of the stored bytes"
    )
    size = models.PositiveBigIntegerField(default=0)
    original_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.id} ({self.content_type})"

    @property
    def url(self):
        return reverse("file_detail", args=[self.id])


# ============================================================================
# SECTION 2: IDENTITY
# ============================================================================

class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("The email must be set")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Network member identified by email.

    Attributes:
        id (UUIDField): Opaque user id
        name (CharField): Display name, copied onto posts and comments
        email (EmailField): Unique login identifier
        bio (TextField): Optional profile text
        avatar (ForeignKey): Optional StoredFile with the profile picture
        connections (ManyToManyField): Users this user is connected to

    Related Names:
        posts: Posts authored by this user
        comments: Comments written by this user
        liked_posts: Posts this user likes
        connected_from: Users holding a connection row pointing at this user

    Example:
        me.connections.add(other)
        other.connections.add(me)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    bio = models.TextField(
        max_length=500,
        blank=True,
        help_text="Profile biography or description"
    )
    avatar = models.ForeignKey(
        StoredFile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Profile picture"
    )
    connections = models.ManyToManyField(
        "self",
        symmetrical=False,
        blank=True,
        related_name="connected_from",
        help_text="Connected users; kept symmetric by the application"
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        ordering = ["date_joined"]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    def connection_ids(self):
        return {c.pk for c in self.connections.all()}

    def serialize(self):
        return {
            "_id": str(self.pk),
            "name": self.name,
            "email": self.email,
            "bio": self.bio,
            "avatar": self.avatar.url if self.avatar_id else None,
            "connections": sorted(str(pk) for pk in self.connection_ids()),
            "createdAt": self.date_joined.isoformat(),
        }


# ============================================================================
# SECTION 3: CONTENT
# ============================================================================

class Post(models.Model):
    """
    User-generated post.

    Attributes:
        user (ForeignKey): Post owner
        name (CharField): Owner's display name at creation time
        text (TextField): Post body, may be empty
        image (ForeignKey): Optional StoredFile attached to the post
        likes (ManyToManyField): Users who like the post, each at most once
        created_at / updated_at (DateTimeField): Timestamps

    Meta:
        ordering: Newest first, ties broken by id
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="posts",
        help_text="Author of this post"
    )
    name = models.CharField(
        max_length=150,
        help_text="Author name captured when the post was created"
    )
    text = models.TextField(blank=True, default="")
    image = models.ForeignKey(
        StoredFile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    likes = models.ManyToManyField(
        User,
        related_name="liked_posts",
        blank=True,
        help_text="Users who like this post"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-pk"]

    def __str__(self):
        return f"{self.name} - {self.text[:50]}"

    def like_ids(self):
        return sorted(str(u.pk) for u in self.likes.all())

    def serialize(self):
        return {
            "_id": str(self.pk),
            "user": str(self.user_id),
            "name": self.name,
            "text": self.text,
            "image": self.image.url if self.image_id else None,
            "likes": self.like_ids(),
            "comments": [c.serialize() for c in self.comments.all()],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def serialize_summary(self):
        """Trimmed projection returned after a comment is removed."""
        return {
            "_id": str(self.pk),
            "user": str(self.user_id),
            "image": self.image.url if self.image_id else None,
            "likes": self.like_ids(),
            "comments": [c.serialize() for c in self.comments.all()],
        }


class Comment(models.Model):
    """
    Comment on a post.

    Comments are addressed by their own id. The author reference is cleared
    when the author deletes their account; the copied name stays.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name="comments",
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="comments",
    )
    name = models.CharField(max_length=150)
    text = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-pk"]

    def __str__(self):
        return f"{self.name}: {self.text[:50]}"

    def serialize(self):
        return {
            "_id": str(self.pk),
            "user": str(self.user_id) if self.user_id else None,
            "name": self.name,
            "text": self.text,
            "createdAt": self.created_at.isoformat(),
        }
