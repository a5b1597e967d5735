"""
Ledger entries — one typed record per tracked mutation.

On disk each entry is a single tagged text line (``PKG:git``,
``GROUPADD:docker:alice`` ...). The file stays human-readable and
hand-editable; these models are the typed view used by the services.

Lines with an unrecognised tag parse to ``UnknownEntry`` and are kept
verbatim so a hand-edited ledger survives rewrites.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

PKG_TAG = "PKG:"
REPO_TAG = "REPO:"
KEYRING_TAG = "KEYRING:"
GROUPADD_TAG = "GROUPADD:"
WSLCONF_BACKUP_TAG = "WSLCONF_BACKUP:"
DOCKER_TEST_TAG = "DOCKER_TEST:"


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def line(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.line


class PackageEntry(_Entry):
    """A package this tool installed."""

    kind: Literal["package"] = "package"
    name: str

    @property
    def line(self) -> str:
        return f"{PKG_TAG}{self.name}"


class RepositoryEntry(_Entry):
    """An external package repository this tool added."""

    kind: Literal["repository"] = "repository"
    repo_id: str

    @property
    def line(self) -> str:
        return f"{REPO_TAG}{self.repo_id}"


class KeyringEntry(_Entry):
    """A trust-key file this tool installed."""

    kind: Literal["keyring"] = "keyring"
    path: str

    @property
    def line(self) -> str:
        return f"{KEYRING_TAG}{self.path}"


class GroupMembershipEntry(_Entry):
    """A group-membership grant this tool performed."""

    kind: Literal["group"] = "group"
    group: str
    user: str

    @property
    def line(self) -> str:
        return f"{GROUPADD_TAG}{self.group}:{self.user}"


class ConfigBackupEntry(_Entry):
    """A backup snapshot of the managed config file."""

    kind: Literal["config_backup"] = "config_backup"
    path: str

    @property
    def line(self) -> str:
        return f"{WSLCONF_BACKUP_TAG}{self.path}"


class DockerTestEntry(_Entry):
    """A smoke-test image or container this tool pulled or ran."""

    kind: Literal["docker_test"] = "docker_test"
    name: str
    artifact: Literal["IMAGE", "CONTAINER"]

    @property
    def line(self) -> str:
        return f"{DOCKER_TEST_TAG}{self.name}:{self.artifact}"


class UnknownEntry(_Entry):
    """A line this version does not understand (kept as-is)."""

    kind: Literal["unknown"] = "unknown"
    raw: str

    @property
    def line(self) -> str:
        return self.raw


LedgerEntry = Union[
    PackageEntry,
    RepositoryEntry,
    KeyringEntry,
    GroupMembershipEntry,
    ConfigBackupEntry,
    DockerTestEntry,
    UnknownEntry,
]


def parse_entry(line: str) -> LedgerEntry:
    """Deserialize one ledger line into its typed entry."""
    if line.startswith(PKG_TAG) and len(line) > len(PKG_TAG):
        return PackageEntry(name=line[len(PKG_TAG):])
    if line.startswith(REPO_TAG) and len(line) > len(REPO_TAG):
        return RepositoryEntry(repo_id=line[len(REPO_TAG):])
    if line.startswith(KEYRING_TAG) and len(line) > len(KEYRING_TAG):
        return KeyringEntry(path=line[len(KEYRING_TAG):])
    if line.startswith(WSLCONF_BACKUP_TAG) and len(line) > len(WSLCONF_BACKUP_TAG):
        return ConfigBackupEntry(path=line[len(WSLCONF_BACKUP_TAG):])
    if line.startswith(GROUPADD_TAG):
        group, sep, user = line[len(GROUPADD_TAG):].partition(":")
        if group and sep and user:
            return GroupMembershipEntry(group=group, user=user)
    if line.startswith(DOCKER_TEST_TAG):
        # Image names may carry a tag (``name:latest``) so split from the right
        name, sep, artifact = line[len(DOCKER_TEST_TAG):].rpartition(":")
        if name and sep and artifact in ("IMAGE", "CONTAINER"):
            return DockerTestEntry(name=name, artifact=artifact)
    return UnknownEntry(raw=line)
