"""
Repository listing and cloning from a GitHub organization.

Populates the source directory the build order is computed from:
every non-archived repository of the organization is cloned and checked
out at the requested git reference. Repositories without that reference
are removed again.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from distbuild.errors import AggregateCloneError, CloneError

logger = logging.getLogger(__name__)

API = "https://api.github.com"
PER_PAGE = 100


@dataclass
class Repository:
    """A repository available for cloning."""
    name: str
    clone_url: str
    archived: bool = False


def _headers(token: Optional[str]) -> dict:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def list_repositories(
    org: str,
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> List[Repository]:
    """Get all repositories of `org`, following pagination."""
    http = session or requests.Session()
    url = f"{API}/orgs/{org}/repos"
    repos = []
    page = 1

    while True:
        r = http.get(
            url,
            params={"per_page": PER_PAGE, "page": page},
            headers=_headers(token),
            timeout=45,
        )
        r.raise_for_status()
        batch = r.json()
        if not batch:
            break

        for item in batch:
            repos.append(Repository(
                name=item["name"],
                clone_url=item["clone_url"],
                archived=bool(item.get("archived", False)),
            ))

        if "next" not in r.links:
            break
        page += 1

    logger.info(f"Found {len(repos)} repositories in {org}")
    return repos


def _git(args: List[str], cwd: Path) -> None:
    subprocess.run(["git"] + args, cwd=str(cwd), check=True)


def clone_repository(repo: Repository, into: Path, ref: str) -> None:
    """
    Clone one repository and check out `ref`.

    Raises:
        CloneError: if cloning fails or `ref` does not exist
    """
    try:
        _git(["clone", repo.clone_url, repo.name], into)
    except (OSError, subprocess.CalledProcessError) as e:
        raise CloneError(repo.name, e) from e

    repo_dir = into / repo.name
    try:
        _git(["checkout", ref], repo_dir)
    except (OSError, subprocess.CalledProcessError) as e:
        # The GitHub API rate limit rules out listing branches per repo,
        # so the clone is dropped after the fact
        shutil.rmtree(repo_dir, ignore_errors=True)
        raise CloneError(repo.name, f"the reference {ref} did not exist") from e


def clone_repositories(
    into: Path,
    ref: str,
    org: str,
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> List[str]:
    """
    Clone every non-archived repository of `org` into `into`.

    Returns:
        Names of the repositories cloned

    Raises:
        ValueError: if no git reference was given
        AggregateCloneError: if any repository failed to clone
    """
    if not ref:
        raise ValueError("Must supply git ref to clone")

    into = Path(into)
    into.mkdir(parents=True, exist_ok=True)

    cloned = []
    errors: List[CloneError] = []
    for repo in list_repositories(org, token=token, session=session):
        if repo.archived:
            logger.debug(f"Skipping archived repository {repo.name}")
            continue
        try:
            clone_repository(repo, into, ref)
        except CloneError as e:
            logger.error(str(e))
            errors.append(e)
            continue
        cloned.append(repo.name)

    if errors:
        raise AggregateCloneError(errors, summary=f"{len(errors)} repositories failed to clone")
    return cloned
