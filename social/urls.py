"""
================================================================================
LINKWORK - URL CONFIGURATION
================================================================================

@file        urls.py
@description REST routes of the social app, mounted under /api/

URL STRUCTURE OVERVIEW
================================================================================
1. Auth        (register, login, current user)
2. Posts       (list/create, edit/delete, like, comments)
3. Users       (suggestions, profile, connect/disconnect)
4. Files       (blob streaming)

URL PARAMETER TYPES
================================================================================
All ids are UUIDs captured as <str:...> so malformed values reach the view
and are answered with 400 instead of a routing 404.
================================================================================
"""

from django.urls import path

from . import views


urlpatterns = [

    # ========================================================================
    # SECTION 1: AUTH
    # ========================================================================

    path("auth/register", views.register, name="register"),
    path("auth/login", views.login_view, name="login"),
    path("auth/me", views.me, name="me"),

    # ========================================================================
    # SECTION 2: POSTS & COMMENTS
    # ========================================================================

    path("posts", views.posts, name="posts"),
    path("posts/<str:post_id>", views.post_detail, name="post_detail"),
    path("posts/<str:post_id>/like", views.toggle_like, name="toggle_like"),
    path("posts/<str:post_id>/comments", views.add_comment, name="add_comment"),
    path(
        "posts/<str:post_id>/comments/<str:comment_id>",
        views.delete_comment,
        name="delete_comment"
    ),

    # ========================================================================
    # SECTION 3: USERS & CONNECTIONS
    # ========================================================================

    path("users", views.users, name="users"),
    path("users/<str:user_id>", views.user_detail, name="user_detail"),
    path("users/<str:user_id>/connect", views.connection, name="connection"),

    # ========================================================================
    # SECTION 4: FILES
    # ========================================================================

    path("files/<str:file_id>", views.file_detail, name="file_detail"),
]
