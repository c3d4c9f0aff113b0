from functools import wraps

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import services
from .gitlab_client import GitLabClient, GitLabError
from .helpers import parse_group_ids

TOKEN_COOKIE = "gitlab_token"
URL_COOKIE = "gitlab_url"
PAGE_TEMPLATE = "explorer/page.html"


def make_client(token: str, gitlab_url: str) -> GitLabClient:
    return GitLabClient(token, gitlab_url, timeout=settings.GITLAB_TIMEOUT)


def _error(message, status: int) -> JsonResponse:
    return JsonResponse({"error": str(message)}, status=status)


def with_gitlab_client(view):
    """Build a client from the credential cookies or answer 401."""

    @wraps(view)
    def wrapper(request: HttpRequest, *args, **kwargs):
        token = request.COOKIES.get(TOKEN_COOKIE, "")
        gitlab_url = request.COOKIES.get(URL_COOKIE, "")
        if not token or not gitlab_url:
            return _error("Not authorized", 401)
        with make_client(token, gitlab_url) as client:
            return view(request, client, *args, **kwargs)

    return wrapper


def _int_params(params, *names):
    values = []
    for name in names:
        raw = params.get(name, "").strip()
        if not raw:
            raise services.MissingParameterError(f"missing parameter: {name}")
        try:
            values.append(int(raw))
        except ValueError:
            raise services.MissingParameterError(f"invalid {name}: {raw!r}") from None
    return values


def index(request: HttpRequest) -> HttpResponse:
    context = {"gitlab_url": settings.GITLAB_URL, "groups": [], "error": "", "loaded": False}
    if request.method != "POST":
        return render(request, PAGE_TEMPLATE, context)

    token = request.POST.get("token", "").strip()
    gitlab_url = request.POST.get("gitlab_url", "").strip()
    raw_ids = request.POST.get("root_group_ids", "").strip()
    context.update(gitlab_url=gitlab_url, root_group_ids=raw_ids)

    try:
        root_ids = parse_group_ids(raw_ids)
    except ValueError as exc:
        context["error"] = f"Invalid group id: {exc}"
        return render(request, PAGE_TEMPLATE, context)

    if not token or not gitlab_url:
        context["error"] = "Token and GitLab URL are required"
        return render(request, PAGE_TEMPLATE, context)

    with make_client(token, gitlab_url) as client:
        try:
            context["groups"] = services.resolve_groups(client, root_ids)
            context["loaded"] = True
        except services.RootGroupError as exc:
            context["groups"] = exc.groups
            context["error"] = str(exc)

    response = render(request, PAGE_TEMPLATE, context)
    response.set_cookie(TOKEN_COOKIE, token, httponly=True)
    response.set_cookie(URL_COOKIE, gitlab_url, httponly=True)
    return response


def logout(request: HttpRequest) -> HttpResponse:
    context = {"gitlab_url": settings.GITLAB_URL, "groups": [], "error": "", "loaded": False}
    response = render(request, PAGE_TEMPLATE, context)
    response.delete_cookie(TOKEN_COOKIE)
    response.delete_cookie(URL_COOKIE)
    return response


@require_GET
@with_gitlab_client
def pipeline(request: HttpRequest, client: GitLabClient) -> JsonResponse:
    try:
        (project_id,) = _int_params(request.GET, "project_id")
        info = services.resolve_pipeline(client, project_id, request.GET.get("ref", ""))
    except services.ExplorerError as exc:
        return _error(exc, 400)
    except GitLabError as exc:
        return _error(exc, 500)
    return JsonResponse(info.to_dict())


@require_GET
@with_gitlab_client
def pipeline_url(request: HttpRequest, client: GitLabClient) -> JsonResponse:
    try:
        (project_id,) = _int_params(request.GET, "project_id")
        info, url = services.resolve_pipeline_url(client, project_id, request.GET.get("ref", ""))
    except services.ExplorerError as exc:
        return _error(exc, 400)
    except GitLabError as exc:
        return _error(exc, 500)
    return JsonResponse({**info.to_dict(), "url": url})


@csrf_exempt
@require_POST
@with_gitlab_client
def job_action(request: HttpRequest, client: GitLabClient) -> JsonResponse:
    params = request.POST or request.GET
    try:
        project_id, job_id = _int_params(params, "project_id", "job_id")
        action = params.get("action", "")
        if not action:
            raise services.MissingParameterError("missing parameter: action")
        services.execute_action(client, project_id, job_id, action)
    except services.ExplorerError as exc:
        return _error(exc, 400)
    except GitLabError as exc:
        return _error(exc, 500)
    return JsonResponse({"status": "success"})


@csrf_exempt
@require_http_methods(["GET", "POST"])
@with_gitlab_client
def tags(request: HttpRequest, client: GitLabClient) -> JsonResponse:
    params = request.POST if request.method == "POST" else request.GET
    try:
        (project_id,) = _int_params(params, "project_id")
        if request.method == "POST":
            tag = services.create_tag(client, project_id, params.get("name", ""), params.get("ref", ""))
            return JsonResponse(tag.to_dict(), status=201)
        return JsonResponse({"tags": [tag.to_dict() for tag in services.list_tags(client, project_id)]})
    except services.ExplorerError as exc:
        return _error(exc, 400)
    except GitLabError as exc:
        return _error(exc, 500)


@csrf_exempt
@require_POST
@with_gitlab_client
def tag_delete(request: HttpRequest, client: GitLabClient) -> JsonResponse:
    try:
        (project_id,) = _int_params(request.POST, "project_id")
        services.delete_tag(client, project_id, request.POST.get("name", ""))
    except services.ExplorerError as exc:
        return _error(exc, 400)
    except GitLabError as exc:
        return _error(exc, 500)
    return JsonResponse({"status": "deleted"})
