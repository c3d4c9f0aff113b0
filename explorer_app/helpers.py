from dataclasses import dataclass
from typing import Any

from django.utils.dateparse import parse_datetime

from .gitlab_client import GitLabError

TAG_PREFIX = "tag:"


@dataclass
class Outcome:
    """Result of a best-effort remote call: a value, or why it was skipped."""
    value: Any = None
    skipped: str | None = None

    @property
    def ok(self) -> bool:
        return self.skipped is None


def attempt(call, *args) -> Outcome:
    try:
        return Outcome(value=call(*args))
    except GitLabError as exc:
        return Outcome(skipped=str(exc))


def tag_ref(name: str) -> str:
    return TAG_PREFIX + name


def strip_tag_marker(ref: str) -> str:
    if is_tag_ref(ref):
        return ref[len(TAG_PREFIX):]
    return ref


def is_tag_ref(ref: str) -> bool:
    return ref.startswith(TAG_PREFIX)


def web_base_url(api_base_url: str, api_path: str = "/api/v4") -> str:
    base = api_base_url.rstrip("/")
    if base.endswith(api_path):
        base = base[: -len(api_path)]
    return base


def pipeline_web_url(api_base_url: str, project_path: str, pipeline_id: int) -> str:
    return f"{web_base_url(api_base_url)}/{project_path.strip('/')}/-/pipelines/{pipeline_id}"


def latest_tag(tags: list[dict]) -> str | None:
    """Name of the tag whose commit was created last, or None."""
    best_name, best_when = None, None
    for tag in tags:
        commit = tag.get("commit") or {}
        when = parse_datetime(commit.get("created_at") or "")
        if best_name is None or (when is not None and (best_when is None or when > best_when)):
            best_name, best_when = tag["name"], when
    return best_name


def parse_group_ids(raw: str) -> list[int]:
    """Parse '5, 6 7' into [5, 6, 7]; raises ValueError on junk."""
    parts = raw.replace(",", " ").split()
    if not parts:
        raise ValueError("no group id given")
    return [int(part) for part in parts]
