"""Git repository wrapper for one project folder.

Every project folder is its own repository.  All commands run through
``git -C <repo>`` with captured output; a failing command raises
``GitCommandError`` carrying stdout and stderr, except a commit with
nothing to commit, which is reported as ``False``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .models import Actor, ChangeSet
from .storage import MARKDOWN_SUFFIX, sanitize_filename

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_NAME = "wikifiles-sync"
DEFAULT_IDENTITY_EMAIL = "wikifiles-sync@localhost"

# Subfolders are nested projects with repositories of their own; only
# the attachments mirror belongs to this one.
EXCLUDE_PATTERNS = ("/*/", "!/_attachments/")

_NOTHING_TO_COMMIT = (
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
)


class GitCommandError(RuntimeError):
    """A git command exited non-zero.

    Attributes:
        command: Arguments passed after ``git -C <repo>``.
        returncode: Exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(command)} failed with exit code {returncode}\n"
            f"STDOUT: {stdout.strip()}\n"
            f"STDERR: {stderr.strip()}"
        )


class GitBackend:
    """Commit, rename, delete and change detection for one repository.

    The repository is created on construction if missing, with a local
    committer identity so commits never fail for lack of one.

    Args:
        repo_path: Project folder (repository root).
        identity_name: Committer name configured in a new repository.
        identity_email: Committer email configured in a new repository.
        timeout: Seconds before a git command is abandoned.
    """

    def __init__(
        self,
        repo_path: Path | str,
        identity_name: str = DEFAULT_IDENTITY_NAME,
        identity_email: str = DEFAULT_IDENTITY_EMAIL,
        timeout: float = 60,
    ) -> None:
        self.repo_path = Path(repo_path)
        self.identity_name = identity_name
        self.identity_email = identity_email
        self.timeout = timeout
        self.ensure_repository()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        command = list(args)
        try:
            return subprocess.run(
                ["git", "-C", str(self.repo_path), *command],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise GitCommandError(command, 127, "", str(exc)) from exc
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(
                command, -1, "", f"timed out after {self.timeout}s"
            ) from exc

    def run_git(self, *args: str) -> str:
        """Run a git command and return its stdout.

        Raises:
            GitCommandError: If the command exits non-zero.
        """
        result = self._run(*args)
        if result.returncode != 0:
            raise GitCommandError(
                list(args), result.returncode, result.stdout, result.stderr
            )
        return result.stdout

    def ensure_repository(self) -> None:
        if (self.repo_path / ".git").exists():
            return
        self.repo_path.mkdir(parents=True, exist_ok=True)
        self.run_git("init", "-q")
        self.run_git("config", "user.name", self.identity_name)
        self.run_git("config", "user.email", self.identity_email)
        exclude = self.repo_path / ".git" / "info" / "exclude"
        exclude.parent.mkdir(parents=True, exist_ok=True)
        with open(exclude, "a", encoding="utf-8") as fh:
            fh.write("\n".join(EXCLUDE_PATTERNS) + "\n")
        logger.info("Initialized git repository in %s", self.repo_path)

    @staticmethod
    def relative_path(title: str) -> str:
        """Repository path of the canonical file for *title*."""
        return f"{sanitize_filename(title)}{MARKDOWN_SUFFIX}"

    def is_tracked(self, relative_path: str) -> bool:
        result = self._run("ls-files", "--error-unmatch", "--", relative_path)
        return result.returncode == 0

    def in_head(self, relative_path: str) -> bool:
        """True if *relative_path* exists in the last commit."""
        result = self._run("cat-file", "-e", f"HEAD:{relative_path}")
        return result.returncode == 0

    def _commit(
        self,
        message: str,
        author: Actor | None,
        paths: list[str] | None = None,
    ) -> bool:
        args = ["commit", "-m", message, "--allow-empty-message"]
        if author is not None:
            args += ["--author", author.git_author]
        if paths:
            args += ["--", *paths]
        result = self._run(*args)
        if result.returncode == 0:
            return True
        output = f"{result.stdout}\n{result.stderr}"
        if any(marker in output for marker in _NOTHING_TO_COMMIT):
            logger.debug("Nothing to commit in %s", self.repo_path)
            return False
        raise GitCommandError(
            args, result.returncode, result.stdout, result.stderr
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def commit(
        self,
        title: str,
        author: Actor | None,
        message: str,
        *,
        path: str | None = None,
    ) -> bool:
        """Stage the file for *title* and commit it.

        Args:
            title: Document title; mapped to its canonical file name.
            author: Commit author, or ``None`` for the repository identity.
            message: Commit message.
            path: Repository path overriding the canonical name, for files
                stored under a legacy name.

        Returns:
            ``True`` if a commit was created, ``False`` if there was
            nothing to commit.
        """
        return self.commit_paths(
            [path or self.relative_path(title)], author, message
        )

    def commit_paths(
        self, paths: list[str], author: Actor | None, message: str
    ) -> bool:
        """Stage *paths* (new, changed or removed) and commit only them.

        Other staged or unstaged changes in the working tree are left out
        of the commit, so a pending external edit is still seen by the
        next :meth:`detect_changes`.
        """
        # git add refuses paths that are neither on disk nor in the index
        staged = [
            p for p in paths if (self.repo_path / p).exists() or self.is_tracked(p)
        ]
        relevant = staged + [
            p for p in paths if p not in staged and self.in_head(p)
        ]
        if not relevant:
            logger.debug("Nothing to stage for %s", paths)
            return False
        if staged:
            self.run_git("add", "-A", "--", *staged)
        return self._commit(message, author, relevant)

    def rename(
        self,
        old_title: str,
        new_title: str,
        author: Actor | None,
        message: str,
        *,
        old_path: str | None = None,
        new_path: str | None = None,
    ) -> bool:
        """Record a rename of *old_title* to *new_title* and commit it.

        Works whether or not the file has already been moved on disk.

        Raises:
            GitCommandError: If staging or committing fails.
        """
        old_relative = old_path or self.relative_path(old_title)
        new_relative = new_path or self.relative_path(new_title)
        if (self.repo_path / old_relative).exists() and self.is_tracked(
            old_relative
        ):
            self.run_git("mv", "--", old_relative, new_relative)
        return self.commit_paths([old_relative, new_relative], author, message)

    def delete(
        self,
        title: str,
        author: Actor | None,
        message: str,
        *,
        path: str | None = None,
    ) -> bool:
        """Remove the file for *title* from the index and commit.

        An untracked file has nothing to record and returns ``False``.

        Raises:
            GitCommandError: If staging or committing fails.
        """
        relative = path or self.relative_path(title)
        if not self.is_tracked(relative):
            return False
        self.run_git("rm", "-q", "--ignore-unmatch", "--", relative)
        return self._commit(message, author, [relative])

    def stage_all(self) -> None:
        self.run_git("add", "-A")

    def commit_all(self, message: str, author: Actor | None = None) -> bool:
        """Stage everything and commit; ``False`` if nothing changed."""
        self.stage_all()
        return self._commit(message, author)

    def detect_changes(self) -> ChangeSet:
        """Classify ``git status`` entries into a ``ChangeSet``.

        Renames are only reported for staged changes, so call
        :meth:`stage_all` first.
        """
        output = self.run_git(
            "status", "--porcelain", "-z", "--untracked-files=all"
        )
        added: list[str] = []
        modified: list[str] = []
        deleted: list[str] = []
        renamed: list[tuple[str, str]] = []

        tokens = output.split("\0")
        index = 0
        while index < len(tokens):
            entry = tokens[index]
            index += 1
            if len(entry) < 4:
                continue
            code, path = entry[:2], entry[3:]
            if code[0] in "RC":
                # -z puts the source path in the following token
                source = tokens[index] if index < len(tokens) else ""
                index += 1
                if code[0] == "R":
                    renamed.append((source, path))
                else:
                    added.append(path)
            elif "D" in code:
                deleted.append(path)
            elif code == "??" or "A" in code:
                added.append(path)
            elif "M" in code or "T" in code:
                modified.append(path)

        return ChangeSet(
            added=added, modified=modified, deleted=deleted, renamed=renamed
        )

    def last_commit_author(self, path: str) -> str | None:
        """Author name of the last commit touching *path*, if any."""
        try:
            output = self.run_git("log", "-1", "--format=%an", "--", path)
        except GitCommandError as exc:
            logger.debug("No history for %s: %s", path, exc.stderr.strip())
            return None
        return output.strip() or None
