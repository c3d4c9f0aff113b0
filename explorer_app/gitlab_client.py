import logging
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

API_PATH = "/api/v4"
DEFAULT_TIMEOUT = 30
PER_PAGE = 100


class GitLabError(Exception):
    """A GitLab call failed, either in transport or with an error status."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    return resp.text[:200]


class GitLabClient:
    """Thin wrapper around the GitLab REST API v4.

    One instance per request: it holds the caller's token and nothing else.
    """

    def __init__(self, token: str, gitlab_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = gitlab_url.rstrip("/") + API_PATH
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"PRIVATE-TOKEN": token})

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s %s", method, url, kwargs.get("params") or "")
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GitLabError(f"{method} {endpoint} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise GitLabError(
                f"{method} {endpoint} -> {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        return resp

    def _json(self, method: str, endpoint: str, resp: requests.Response):
        try:
            return resp.json()
        except ValueError as exc:
            raise GitLabError(f"{method} {endpoint}: invalid JSON response", status_code=resp.status_code) from exc

    def _get(self, endpoint: str, params: dict | None = None):
        return self._json("GET", endpoint, self._request("GET", endpoint, params=params))

    def _post(self, endpoint: str, params: dict | None = None):
        return self._json("POST", endpoint, self._request("POST", endpoint, params=params))

    def _paginate(self, endpoint: str, params: dict | None = None) -> list[dict]:
        params = dict(params or {})
        params.setdefault("per_page", PER_PAGE)
        page = "1"
        results = []
        while page:
            params["page"] = page
            resp = self._request("GET", endpoint, params=params)
            results.extend(self._json("GET", endpoint, resp))
            page = resp.headers.get("X-Next-Page", "")
        return results

    # groups

    def get_group(self, group_id):
        return self._get(f"/groups/{group_id}", {"with_projects": "false"})

    def list_descendant_groups(self, group_id):
        return self._paginate(f"/groups/{group_id}/descendant_groups")

    def list_group_projects(self, group_id):
        return self._paginate(f"/groups/{group_id}/projects")

    # projects and refs

    def get_project(self, project_id):
        return self._get(f"/projects/{project_id}")

    def list_branches(self, project_id):
        return self._paginate(f"/projects/{project_id}/repository/branches")

    def list_tags(self, project_id, order_by=None, sort=None):
        params = {}
        if order_by:
            params["order_by"] = order_by
        if sort:
            params["sort"] = sort
        return self._paginate(f"/projects/{project_id}/repository/tags", params)

    def create_tag(self, project_id, name, ref):
        return self._post(
            f"/projects/{project_id}/repository/tags",
            {"tag_name": name, "ref": ref},
        )

    def delete_tag(self, project_id, name):
        self._request("DELETE", f"/projects/{project_id}/repository/tags/{quote(name, safe='')}")

    # pipelines and jobs

    def list_pipelines(self, project_id, ref, order_by="id", sort="desc", per_page=1):
        params = {
            "ref": ref,
            "order_by": order_by,
            "sort": sort,
            "per_page": per_page,
            "page": 1,
        }
        return self._get(f"/projects/{project_id}/pipelines", params)

    def list_pipeline_jobs(self, project_id, pipeline_id):
        return self._paginate(f"/projects/{project_id}/pipelines/{pipeline_id}/jobs")

    def list_pipeline_bridges(self, project_id, pipeline_id):
        return self._paginate(f"/projects/{project_id}/pipelines/{pipeline_id}/bridges")

    def play_job(self, project_id, job_id):
        return self._post(f"/projects/{project_id}/jobs/{job_id}/play")

    def retry_job(self, project_id, job_id):
        return self._post(f"/projects/{project_id}/jobs/{job_id}/retry")

    def cancel_job(self, project_id, job_id):
        return self._post(f"/projects/{project_id}/jobs/{job_id}/cancel")
