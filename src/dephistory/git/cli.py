"""Git collaborator backed by the ``git`` executable."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from ..exceptions import ExternalToolError
from ..history.models import CommitInfo
from ..logging_config import get_logger
from ..process import run_command
from .base import GitCollaborator

logger = get_logger(__name__)

REMOTE_PREFIX = "refs/remotes/origin/"


def parse_show_ref(output: str) -> dict[str, str]:
    """Map ref → sha from ``git show-ref -d`` output.

    Peeled ``^{}`` lines override the tag object sha, ``*/HEAD`` refs are
    dropped and remote-tracking refs are reported as local heads.
    """
    refs: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split()
        if len(parts) != 2:
            continue
        sha, ref = parts
        if ref.endswith("^{}"):
            ref = ref[: -len("^{}")]
        if ref.endswith("/HEAD"):
            continue
        if ref.startswith(REMOTE_PREFIX):
            ref = "refs/heads/" + ref[len(REMOTE_PREFIX):]
        refs[ref] = sha
    return refs


def parse_log_graph(output: str) -> list[CommitInfo]:
    """Parse ``git log --format='%H %P'`` lines."""
    commits = []
    for line in output.splitlines():
        parts = line.split()
        if parts:
            commits.append(CommitInfo(parts[0], tuple(parts[1:])))
    return commits


def parse_for_each_ref(output: str, prefix: str = "refs/heads/") -> dict[str, str]:
    """Parse ``git for-each-ref --format='%(objectname) %(refname)'`` into name → sha."""
    heads = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) == 2 and parts[1].startswith(prefix):
            heads[parts[1][len(prefix):]] = parts[0]
    return heads


class GitCli(GitCollaborator):
    def __init__(
        self,
        clone_url_template: str = "https://github.com/{full_name}",
        timeout: int = 600,
        workspace_dir: Optional[str] = None,
        executable: str = "git",
    ):
        self.clone_url_template = clone_url_template
        self.timeout = timeout
        self.workspace_dir = workspace_dir
        self.executable = executable

    def _git(self, path: Optional[Path], *args: str) -> str:
        cmd = [self.executable]
        if path is not None:
            cmd += ["-C", str(path)]
        return run_command(cmd + list(args), self.timeout)

    def clone(self, full_name: str) -> Path:
        if self.workspace_dir:
            Path(self.workspace_dir).mkdir(parents=True, exist_ok=True)
        parent = Path(tempfile.mkdtemp(prefix="dephistory-", dir=self.workspace_dir))
        target = parent / full_name.split("/")[-1]
        url = self.clone_url_template.format(full_name=full_name)
        try:
            self._git(None, "clone", "--quiet", url, str(target))
            remotes = parse_for_each_ref(
                self._git(target, "for-each-ref", "--format=%(objectname) %(refname)", REMOTE_PREFIX),
                prefix=REMOTE_PREFIX,
            )
            local = parse_for_each_ref(
                self._git(target, "for-each-ref", "--format=%(objectname) %(refname)", "refs/heads/")
            )
            for branch in sorted(remotes):
                if branch != "HEAD" and branch not in local:
                    self._git(target, "branch", "--quiet", "--track", branch, f"origin/{branch}")
        except Exception:
            shutil.rmtree(parent, ignore_errors=True)
            raise
        logger.debug(f"Cloned {full_name} into {target}")
        return target

    def checkout(self, path: Path, ref: str) -> str:
        name = ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
        self._git(path, "checkout", "--quiet", "--force", name)
        return self._git(path, "rev-parse", "HEAD").strip()

    def list_refs_at_sha(self, path: Path, sha: str) -> list[str]:
        refs = parse_show_ref(self._git(path, "show-ref", "-d"))
        return sorted(ref for ref, ref_sha in refs.items() if ref_sha == sha)

    def tags_at(self, path: Path) -> dict[str, list[str]]:
        refs = parse_show_ref(self._git(path, "show-ref", "-d"))
        tags: dict[str, list[str]] = {}
        for ref in sorted(refs):
            if ref.startswith("refs/tags/"):
                tags.setdefault(refs[ref], []).append(ref)
        return tags

    def commit_graph(self, path: Path) -> list[CommitInfo]:
        return parse_log_graph(self._git(path, "log", "--all", "--format=%H %P"))

    def branch_heads(self, path: Path) -> dict[str, str]:
        return parse_for_each_ref(
            self._git(path, "for-each-ref", "--format=%(objectname) %(refname)", "refs/heads/")
        )

    def default_branch(self, path: Path) -> Optional[str]:
        try:
            ref = self._git(path, "symbolic-ref", "--quiet", "refs/remotes/origin/HEAD").strip()
        except ExternalToolError as e:
            logger.debug(f"No origin HEAD in {path}: {e}")
            return None
        return ref[len(REMOTE_PREFIX):] if ref.startswith(REMOTE_PREFIX) else None

    def remove(self, path: Path) -> None:
        # clone() puts each working copy in its own temporary parent
        parent = Path(path).parent
        target = parent if parent.name.startswith("dephistory-") else Path(path)
        try:
            shutil.rmtree(target)
        except OSError as e:
            logger.warning(f"Failed to remove working copy {target}: {e}")
