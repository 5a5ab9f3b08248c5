"""Per-repository and per-package detail records stored as JSON."""

from pydantic import BaseModel

CI_MARKERS = (
    "has_github_action",
    "has_gitlab_pipeline",
    "has_circle_ci",
    "has_cirrus_ci",
    "has_travis_ci",
    "has_jenkins",
    "has_appveyor",
    "has_azure_pipeline",
    "has_bitbucket_pipeline",
)


class VcsDetails(BaseModel):
    """What we know about a cloned source repository.

    A zero-valued instance stands for "nothing collected yet".
    """

    has_github_action: bool = False
    has_gitlab_pipeline: bool = False
    has_circle_ci: bool = False
    has_cirrus_ci: bool = False
    has_travis_ci: bool = False
    has_jenkins: bool = False
    has_appveyor: bool = False
    has_azure_pipeline: bool = False
    has_bitbucket_pipeline: bool = False

    commit_count: int = 0
    cargo_toml_in_root: bool = False
    cargo_fmt: str = ""
    git_clone_error: str = ""

    has_rustfmt_toml: bool = False
    has_dot_rustfmt_toml: bool = False

    @property
    def has_ci(self) -> bool:
        return any(getattr(self, marker) for marker in CI_MARKERS)


class CrateDetails(BaseModel):
    """Markers collected from an unpacked package archive."""

    folder: str = ""
    has_cargo_toml: bool = False
    has_cargo_toml_in_lower_case: bool = False
    has_cargo_lock: bool = False
    has_main_rs: bool = False
    has_build_rs: bool = False
    has_clippy_toml: bool = False
    has_dot_clippy_toml: bool = False
    has_rustfmt_toml: bool = False
    has_dot_rustfmt_toml: bool = False
    nonstandard_folders: list[str] = []
    size: int = 0
