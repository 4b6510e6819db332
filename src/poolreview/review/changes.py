"""Changed-file intake - which pool files a PR touches, and which items own them.

Runs `git diff --name-status` against the reference revision (working tree
and index included) and joins every changed path to the items whose source
file it is.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from poolreview.exceptions import GitError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import ItemRef


class ChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    UNKNOWN = "unknown"


# git --name-status letters to libgit2 git_delta_t codes
_STATUS_CODES: dict[str, int] = {
    "A": 1,
    "D": 2,
    "M": 3,
    "R": 4,
    "C": 5,
    "T": 8,
    "X": 9,
    "U": 10,
}


@dataclass(frozen=True)
class ChangedFile:
    """One changed path."""

    path: str
    status: ChangeStatus
    code: int | None = None  # git_delta_t code for UNKNOWN statuses
    old_path: str | None = None  # for renames and copies

    @property
    def label(self) -> str:
        if self.status == ChangeStatus.ADDED:
            return "New"
        if self.status == ChangeStatus.MODIFIED:
            return "Modified"
        return f"Unknown ({self.code})"


@dataclass(frozen=True)
class ChangedItem:
    """An item owning a changed path."""

    ref: ItemRef
    path: str
    status: ChangeStatus
    label: str = ""


@dataclass
class ChangeSet:
    """Changed files joined to the items of a store."""

    files: list[ChangedFile] = field(default_factory=list)
    items: list[ChangedItem] = field(default_factory=list)
    non_items: list[str] = field(default_factory=list)

    @property
    def refs(self) -> list[ItemRef]:
        return list(dict.fromkeys(ci.ref for ci in self.items))

    @classmethod
    def resolve(cls, store: ItemStore, files: list[ChangedFile]) -> ChangeSet:
        """Join changed paths to the items that own them."""
        change_set = cls(files=list(files))
        seen: set[ItemRef] = set()
        for changed in files:
            owners = store.owners_of_path(changed.path)
            if not owners:
                change_set.non_items.append(changed.path)
                continue
            for ref in owners:
                if ref in seen:
                    continue
                seen.add(ref)
                change_set.items.append(
                    ChangedItem(ref=ref, path=changed.path, status=changed.status, label=changed.label)
                )
        return change_set


def parse_name_status(text: str) -> list[ChangedFile]:
    """Parse `git diff --name-status` output into ChangedFile records."""
    files: list[ChangedFile] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = line.split("\t")
        letter = fields[0][:1]
        if letter in ("R", "C") and len(fields) >= 3:
            old_path, path = fields[1], fields[2]
        elif len(fields) >= 2:
            old_path, path = None, fields[1]
        else:
            continue

        if letter == "A":
            status = ChangeStatus.ADDED
        elif letter == "M":
            status = ChangeStatus.MODIFIED
        else:
            status = ChangeStatus.UNKNOWN
        code = _STATUS_CODES.get(letter, 0) if status == ChangeStatus.UNKNOWN else None
        files.append(ChangedFile(path=path, status=status, code=code, old_path=old_path))
    return files


def get_git_diff(root: Path, base: str = "master", timeout: int = 30) -> str:
    """Get `--name-status` output of the working tree against `base`."""
    try:
        result = subprocess.run(
            ["git", "diff", "--name-status", "--find-renames", "--relative", base],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        raise GitError(f"Could not run git in {root}: {e}") from e
    if result.returncode != 0:
        raise GitError(f"git diff against {base} failed: {result.stderr.strip()}")
    return result.stdout


def get_changed_files(root: Path, base: str = "master", timeout: int = 30) -> list[ChangedFile]:
    """Changed files of the working tree against `base`."""
    return parse_name_status(get_git_diff(root, base, timeout))
