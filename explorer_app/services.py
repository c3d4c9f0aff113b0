"""Group tree, ref catalog, pipeline and job-control operations.

Every function takes an already-authenticated client as its first argument
and issues its remote calls one at a time, in a fixed order. Nothing is
cached between calls.
"""
import logging
from typing import NamedTuple

from .gitlab_client import GitLabError
from .helpers import attempt, latest_tag, pipeline_web_url, strip_tag_marker, tag_ref
from .models import Bridge, Group, Job, Pipeline, Project, Tag

logger = logging.getLogger(__name__)

NO_PIPELINES_MESSAGE = "No pipelines for this ref"
JOB_ACTIONS = ("play", "retry", "cancel")


class ExplorerError(Exception):
    pass


class MissingParameterError(ExplorerError):
    pass


class UnknownActionError(ExplorerError):
    def __init__(self, action):
        super().__init__(f"unknown action: {action!r}")
        self.action = action


class RootGroupError(ExplorerError):
    """A root group could not be resolved.

    ``groups`` holds whatever was resolved for the roots before it.
    """

    def __init__(self, group_id, cause, groups):
        super().__init__(f"failed to load group {group_id}: {cause}")
        self.group_id = group_id
        self.cause = cause
        self.groups = groups


class RefCatalog(NamedTuple):
    refs: list[str]
    branches: list[str]
    latest_tag: str | None


def _ref_catalog(client, project_id) -> RefCatalog:
    refs, branches = [], []

    fetched = attempt(client.list_branches, project_id)
    if not fetched.ok:
        logger.warning("branches of project %s skipped: %s", project_id, fetched.skipped)
    for branch in fetched.value or []:
        refs.append(branch["name"])
        branches.append(branch["name"])

    fetched = attempt(client.list_tags, project_id, "updated", "desc")
    if not fetched.ok:
        logger.warning("tags of project %s skipped: %s", project_id, fetched.skipped)
    tags = fetched.value or []
    for tag in tags:
        refs.append(tag_ref(tag["name"]))

    return RefCatalog(refs, branches, latest_tag(tags))


def build_refs(client, project) -> tuple[list[str], list[str]]:
    """Return (refs, branches) for a project: branches verbatim, tags marked."""
    project_id = project["id"] if isinstance(project, dict) else project
    catalog = _ref_catalog(client, project_id)
    return catalog.refs, catalog.branches


def _resolve_group(client, group: dict) -> Group | None:
    resolved = Group(id=group["id"], name=group["name"], path=group.get("full_path", ""))
    fetched = attempt(client.list_group_projects, group["id"])
    if not fetched.ok:
        logger.warning("group %s (%s) skipped: %s", resolved.id, resolved.path, fetched.skipped)
        return None

    for data in fetched.value:
        catalog = _ref_catalog(client, data["id"])
        resolved.projects.append(
            Project(
                id=data["id"],
                name=data["name"],
                refs=catalog.refs,
                branches=catalog.branches,
                latest_tag=catalog.latest_tag,
            )
        )
        resolved.all_refs.update(catalog.refs)
        resolved.all_branches.update(catalog.branches)
    return resolved


def resolve_groups(client, root_group_ids) -> list[Group]:
    """Flatten each root group and its descendants into a list of Groups.

    Roots are processed in order and not deduplicated against each other.
    A group whose projects cannot be listed is left out. A root that cannot
    be fetched raises RootGroupError carrying the groups resolved so far.
    """
    groups = []
    for root_id in root_group_ids:
        try:
            root = client.get_group(root_id)
            descendants = client.list_descendant_groups(root_id)
        except GitLabError as exc:
            raise RootGroupError(root_id, exc, groups) from exc

        for group in [root, *descendants]:
            resolved = _resolve_group(client, group)
            if resolved is not None:
                groups.append(resolved)

    logger.info("resolved %d groups from roots %s", len(groups), list(root_group_ids))
    return groups


def _downstream_jobs(client, bridge: dict) -> list[Job]:
    downstream = bridge.get("downstream_pipeline")
    if not downstream:
        return []
    fetched = attempt(client.list_pipeline_jobs, downstream["project_id"], downstream["id"])
    if not fetched.ok:
        logger.warning("downstream jobs of bridge %s skipped: %s", bridge["id"], fetched.skipped)
        return []
    return [Job.from_api(job) for job in fetched.value]


def resolve_pipeline(client, project_id, ref) -> Pipeline:
    """Latest pipeline for ref, with its jobs and each bridge's downstream jobs.

    A ref without pipelines yields a Pipeline whose only content is
    ``error``; remote failures raise GitLabError. Bridges of downstream
    pipelines are not followed.
    """
    ref = strip_tag_marker(ref or "")
    if not ref:
        raise MissingParameterError("ref is required")

    pipelines = client.list_pipelines(project_id, ref, order_by="id", sort="desc", per_page=1)
    if not pipelines:
        return Pipeline(ref=ref, error=NO_PIPELINES_MESSAGE)
    latest = pipelines[0]

    jobs = [Job.from_api(job) for job in client.list_pipeline_jobs(project_id, latest["id"])]

    bridges = []
    for bridge in client.list_pipeline_bridges(project_id, latest["id"]):
        downstream = bridge.get("downstream_pipeline") or {}
        bridges.append(
            Bridge(
                id=bridge["id"],
                name=bridge["name"],
                status=bridge["status"],
                downstream_project_id=downstream.get("project_id"),
                downstream_jobs=_downstream_jobs(client, bridge),
            )
        )

    logger.info("project %s ref %s: pipeline %s", project_id, ref, latest["id"])
    return Pipeline(
        id=latest["id"],
        ref=ref,
        status=latest.get("status", ""),
        jobs=jobs,
        bridges=bridges,
    )


def resolve_pipeline_url(client, project_id, ref) -> tuple[Pipeline, str | None]:
    pipeline = resolve_pipeline(client, project_id, ref)
    if pipeline.id is None:
        return pipeline, None
    project = client.get_project(project_id)
    return pipeline, pipeline_web_url(client.base_url, project["path_with_namespace"], pipeline.id)


def execute_action(client, project_id, job_id, action) -> None:
    if action not in JOB_ACTIONS:
        raise UnknownActionError(action)
    dispatch = {
        "play": client.play_job,
        "retry": client.retry_job,
        "cancel": client.cancel_job,
    }
    dispatch[action](project_id, job_id)
    logger.info("job %s of project %s: %s", job_id, project_id, action)


def list_tags(client, project_id) -> list[Tag]:
    return [Tag.from_api(tag) for tag in client.list_tags(project_id, "updated", "desc")]


def create_tag(client, project_id, name, ref) -> Tag:
    if not name or not ref:
        raise MissingParameterError("tag name and ref are required")
    tag = Tag.from_api(client.create_tag(project_id, name, ref))
    logger.info("project %s: created tag %s at %s", project_id, tag.name, ref)
    return tag


def delete_tag(client, project_id, name) -> None:
    if not name:
        raise MissingParameterError("tag name is required")
    client.delete_tag(project_id, name)
    logger.info("project %s: deleted tag %s", project_id, name)
