from dataclasses import dataclass, field


@dataclass
class Job:
    id: int
    name: str
    status: str
    stage: str

    @classmethod
    def from_api(cls, data: dict) -> "Job":
        return cls(id=data["id"], name=data["name"], status=data["status"], stage=data.get("stage", ""))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "status": self.status, "stage": self.stage}


@dataclass
class Bridge:
    """A trigger job; downstream_jobs belong to the pipeline it spawned."""
    id: int
    name: str
    status: str
    downstream_project_id: int | None = None
    downstream_jobs: list[Job] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "downstream_project_id": self.downstream_project_id,
            "downstream_jobs": [job.to_dict() for job in self.downstream_jobs],
        }


@dataclass
class Pipeline:
    id: int | None = None
    ref: str = ""
    status: str = ""
    jobs: list[Job] = field(default_factory=list)
    bridges: list[Bridge] = field(default_factory=list)
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ref": self.ref,
            "status": self.status,
            "jobs": [job.to_dict() for job in self.jobs],
            "bridges": [bridge.to_dict() for bridge in self.bridges],
            "error": self.error,
        }


@dataclass
class Project:
    """refs holds branch names followed by 'tag:'-prefixed tag names."""
    id: int
    name: str
    refs: list[str] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)
    latest_tag: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "refs": list(self.refs),
            "branches": list(self.branches),
            "latest_tag": self.latest_tag,
        }


@dataclass
class Group:
    id: int
    name: str
    path: str
    projects: list[Project] = field(default_factory=list)
    all_refs: set[str] = field(default_factory=set)
    all_branches: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "projects": [project.to_dict() for project in self.projects],
            "all_refs": sorted(self.all_refs),
            "all_branches": sorted(self.all_branches),
        }


@dataclass
class Tag:
    name: str
    commit: str

    @classmethod
    def from_api(cls, data: dict) -> "Tag":
        commit = data.get("commit") or {}
        return cls(name=data["name"], commit=commit.get("id", ""))

    def to_dict(self) -> dict:
        return {"name": self.name, "commit": self.commit}
