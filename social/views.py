import json
import logging

from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.http import JsonResponse, QueryDict, StreamingHttpResponse
from django.http.multipartparser import MultiPartParserError
from django.utils.cache import patch_cache_control
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import services
from .auth import issue_token, token_required
from .blobs import blob_store
from .errors import InvalidArgument, NotFound, Unexpected
from .models import User
from .utils import is_truthy


# Logger
logger = logging.getLogger(__name__)

FILE_CACHE_SECONDS = 60 * 60 * 24 * 365


def _payload(request):
    """
    Return (data, files) for JSON, urlencoded and multipart bodies.

    Django only parses form bodies for POST, so PUT bodies are parsed here.
    """
    content_type = request.content_type or ""
    if content_type == "application/json":
        if not request.body:
            return {}, {}
        try:
            data = json.loads(request.body)
        except ValueError:
            raise InvalidArgument("Malformed JSON body")
        if not isinstance(data, dict):
            raise InvalidArgument("Expected a JSON object")
        return data, {}
    try:
        if request.method == "POST":
            return request.POST, request.FILES
        if content_type == "multipart/form-data":
            return request.parse_file_upload(request.META, request)
        if content_type == "application/x-www-form-urlencoded":
            return QueryDict(request.body, encoding=request.encoding), {}
    except MultiPartParserError as e:
        raise InvalidArgument(f"Malformed form data: {e}")
    return {}, {}


def _text(data, key):
    """Return a body field as a string, or None when absent or null."""
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidArgument(f"Field '{key}' must be a string")
    return value


def _image(files, field):
    upload = files.get(field) if files else None
    if upload is None:
        return None
    content_type = getattr(upload, "content_type", "") or ""
    if not content_type.startswith("image/"):
        raise InvalidArgument("Only image uploads are supported")
    return upload


def index(request):
    return JsonResponse({"message": "LinkWork API running"})


# ============================================================================
# AUTH
# ============================================================================

@csrf_exempt
@require_POST
def register(request):
    data, _ = _payload(request)
    name = (_text(data, "name") or "").strip()
    email = (_text(data, "email") or "").strip().lower()
    password = _text(data, "password") or ""

    if not name or not email or not password:
        raise InvalidArgument("Name, email and password are required")
    try:
        validate_email(email)
    except ValidationError:
        raise InvalidArgument("Please enter a valid email address")
    if User.objects.filter(email__iexact=email).exists():
        raise InvalidArgument("User already exists")
    try:
        validate_password(password, User(name=name, email=email))
    except ValidationError as e:
        raise InvalidArgument(" ".join(e.messages))

    user = User.objects.create_user(email=email, password=password, name=name)
    logger.info(f"Registered user {user.pk}")
    return JsonResponse({"token": issue_token(user), "user": user.serialize()}, status=201)


@csrf_exempt
@require_POST
def login_view(request):
    data, _ = _payload(request)
    email = (_text(data, "email") or "").strip().lower()
    password = _text(data, "password") or ""

    user = authenticate(request, username=email, password=password)
    if user is None:
        raise InvalidArgument("Invalid credentials")
    return JsonResponse({"token": issue_token(user), "user": user.serialize()})


@require_GET
@token_required
def me(request):
    return JsonResponse({"user": services.get_user(request.identity.pk).serialize()})


# ============================================================================
# POSTS
# ============================================================================

@csrf_exempt
@require_http_methods(["GET", "POST"])
def posts(request):
    if request.method == "POST":
        return create_post(request)
    return JsonResponse([p.serialize() for p in services.list_posts()], safe=False)


@token_required
def create_post(request):
    data, files = _payload(request)
    post = services.create_post(
        request.identity,
        text=_text(data, "text"),
        image=_image(files, "image"),
    )
    return JsonResponse(post.serialize(), status=201)


@csrf_exempt
@require_http_methods(["PUT", "DELETE"])
@token_required
def post_detail(request, post_id):
    if request.method == "DELETE":
        services.delete_post(post_id, request.identity)
        return JsonResponse({"message": "Post removed"})

    data, files = _payload(request)
    text = _text(data, "text")
    post = services.edit_post(
        post_id,
        request.identity,
        text=services.MISSING if text is None else text,
        image=_image(files, "image"),
        remove_image=is_truthy(data.get("removeImage", False)),
    )
    return JsonResponse(post.serialize())


@csrf_exempt
@require_POST
@token_required
def toggle_like(request, post_id):
    post = services.toggle_like(post_id, request.identity)
    return JsonResponse(post.serialize())


@csrf_exempt
@require_POST
@token_required
def add_comment(request, post_id):
    data, _ = _payload(request)
    text = (_text(data, "text") or "").strip()
    if not text:
        raise InvalidArgument("Comment cannot be empty")
    comment = services.add_comment(post_id, request.identity, text)
    return JsonResponse(comment.serialize(), status=201)


@csrf_exempt
@require_http_methods(["DELETE"])
@token_required
def delete_comment(request, post_id, comment_id):
    post = services.delete_comment(post_id, comment_id, request.identity)
    return JsonResponse({"message": "Comment removed", "post": post.serialize_summary()})


# ============================================================================
# USERS & CONNECTIONS
# ============================================================================

@require_GET
@token_required
def users(request):
    results = []
    for candidate in services.suggestions(request.identity):
        entry = candidate.serialize()
        entry["mutualCount"] = candidate.mutual_count
        results.append(entry)
    return JsonResponse(results, safe=False)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def user_detail(request, user_id):
    if request.method == "PUT":
        return update_profile(request, user_id)
    if request.method == "DELETE":
        return delete_account(request, user_id)

    user, user_posts = services.get_profile(user_id)
    return JsonResponse({
        "user": user.serialize(),
        "posts": [p.serialize() for p in user_posts],
    })


@token_required
def update_profile(request, user_id):
    data, files = _payload(request)
    user = services.update_profile(
        request.identity,
        user_id,
        name=(_text(data, "name") or "").strip() or None,
        bio=_text(data, "bio"),
        avatar=_image(files, "avatar"),
    )
    return JsonResponse({"user": user.serialize()})


@token_required
def delete_account(request, user_id):
    services.delete_account(request.identity, user_id)
    return JsonResponse({"message": "Account deleted"})


@csrf_exempt
@require_http_methods(["POST", "DELETE"])
@token_required
def connection(request, user_id):
    if request.method == "DELETE":
        services.disconnect(request.identity, user_id)
        return JsonResponse({"message": "Disconnected", "connected": False})

    target = services.connect(request.identity, user_id)
    return JsonResponse({
        "message": "Connected",
        "connected": True,
        "target": {
            "_id": str(target.pk),
            "name": target.name,
            "connections": target.connections.count(),
        },
    })


# ============================================================================
# FILES
# ============================================================================

@require_GET
def file_detail(request, file_id):
    reader = blob_store.open(file_id)
    response = StreamingHttpResponse(reader, content_type=reader.content_type)
    response["Content-Length"] = str(reader.size)
    patch_cache_control(response, public=True, max_age=FILE_CACHE_SECONDS, immutable=True)
    return response


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def not_found(request, exception=None):
    error = NotFound("Route not found")
    return JsonResponse(error.as_dict(), status=error.status)


def server_error(request):
    error = Unexpected()
    return JsonResponse(error.as_dict(), status=error.status)
