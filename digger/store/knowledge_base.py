"""The joined, denormalised package table used by the report builder."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..common import elapsed_timer
from ..details import CrateDetails
from ..manifest import Cargo
from ..models import Crate, User
from ..workspace import (
    ERRORS_FILE,
    LOWER_CASE_FILE,
    MISSING_FILE,
    NAMELESS_ERRORS_FILE,
    RELEASED_FILE,
    Workspace,
)
from .dump_reader import (
    latest_versions,
    read_crate_owners,
    read_crates,
    read_teams,
    read_users,
    read_versions,
)
from .vcs_details import load_vcs_details

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Load an aggregate file; ``default`` when it is missing or malformed."""
    if not path.exists():
        logger.warning("%s does not exist yet", path)
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.error("Error reading '%s' %s", path, e)
        return default


def read_crate_details(path: Path) -> CrateDetails:
    """One per-package analysis; a blank record if absent or malformed."""
    if not path.exists():
        return CrateDetails()
    try:
        return CrateDetails.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.error("Error reading crate details from '%s' %s", path, e)
        return CrateDetails()


class KnowledgeBase:
    """Packages joined with manifests, owners, analyses and repository details."""

    def __init__(self, workspace: Workspace, limit: int = 0):
        self.workspace = workspace
        self.limit = limit

        self.crates: list[Crate] = []
        self.crate_by_id: dict[str, Crate] = {}
        self.users: dict[str, User] = {}
        self.owner_by_crate_id: dict[str, str] = {}
        self.crates_by_owner: dict[str, list[str]] = {}

        self.errors: dict[str, str] = {}
        self.nameless_errors: dict[str, str] = {}
        self.missing: list[str] = []
        self.in_lower_case: list[str] = []

    def load(self) -> "KnowledgeBase":
        """Run the join. Fatal dump errors propagate as ``DumpError``."""
        with elapsed_timer("load knowledge base"):
            self.crates = read_crates(self.workspace, self.limit)
            self.crate_by_id = {krate.id: krate for krate in self.crates}

            self._attach_manifests()
            self._load_identities()
            self._attach_owners()
            self._attach_details()
            self._load_aggregates()
        return self

    def _attach_manifests(self) -> None:
        manifests: dict[str, Cargo] = {}
        for entry in read_json(self.workspace.data / RELEASED_FILE, []):
            try:
                cargo = Cargo.model_validate(entry)
            except ValidationError as e:
                logger.error("Skipping released manifest entry: %s", e)
                continue
            manifests[cargo.package.name] = cargo
        logger.info("Loaded %d released manifests", len(manifests))

        for krate in self.crates:
            krate.cargo = manifests.get(krate.name)

    def _load_identities(self) -> None:
        # Users and teams share one id space.
        for user in read_users(self.workspace) + read_teams(self.workspace):
            self.users[user.id] = user

        self.owner_by_crate_id, self.crates_by_owner = read_crate_owners(self.workspace)

    def _attach_owners(self) -> None:
        for krate in self.crates:
            owner_id = self.owner_by_crate_id.get(krate.id)
            if owner_id is None:
                continue
            user = self.users.get(owner_id)
            if user is None:
                logger.warning("Owner %s of crate %s is unknown", owner_id, krate.name)
                continue
            krate.owner_gh_login = user.gh_login
            krate.owner_name = user.name
            krate.owner_gh_avatar = user.gh_avatar

        for owner_id, crate_ids in self.crates_by_owner.items():
            user = self.users.get(owner_id)
            if user is not None:
                user.count = sum(1 for crate_id in crate_ids if crate_id in self.crate_by_id)

    def _attach_details(self) -> None:
        latest = latest_versions(read_versions(self.workspace))
        for krate in self.crates:
            krate.details = load_vcs_details(self.workspace.repo_details, krate.repository)
            version = latest.get(krate.id)
            if version is not None:
                path = self.workspace.analysis_path(f"{krate.name}-{version.num}")
                krate.analysis = read_crate_details(path)

    def _load_aggregates(self) -> None:
        data = self.workspace.data
        self.errors = read_json(data / ERRORS_FILE, {})
        self.nameless_errors = read_json(data / NAMELESS_ERRORS_FILE, {})
        self.missing = read_json(data / MISSING_FILE, [])
        self.in_lower_case = read_json(data / LOWER_CASE_FILE, [])

    def crates_of(self, owner_id: str) -> list[Crate]:
        """Loaded packages owned by ``owner_id``, most recently updated first."""
        ids = set(self.crates_by_owner.get(owner_id, []))
        return [krate for krate in self.crates if krate.id in ids]

    def owners(self) -> list[User]:
        """Users and teams owning at least one loaded package, sorted by name."""
        owners = [user for user in self.users.values() if user.count > 0]
        owners.sort(key=lambda user: (user.name.lower(), user.gh_login_lower))
        return owners

    def get_summary(self) -> dict:
        return {
            "crates": len(self.crates),
            "owners": len(self.owners()),
            "manifests": sum(1 for krate in self.crates if krate.cargo is not None),
            "errors": len(self.errors),
            "nameless_errors": len(self.nameless_errors),
            "missing": len(self.missing),
            "in_lower_case": len(self.in_lower_case),
        }
