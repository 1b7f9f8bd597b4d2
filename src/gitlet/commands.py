"""
Command layer.

Maps command-line verbs onto repository operations. dispatch() turns
every handled failure into a CommandResult value; main() prints it.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import RepositoryConfig, resolve_log_level
from .errors import ConfigError, ErrorKind, GitletError, OperationError
from .merge import MergeOutcome
from .model.commit import Commit
from .repository import Repository, StatusReport
from .storage.layout import RepositoryLayout

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    output: List[str] = field(default_factory=list)
    error: Optional[GitletError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        # User errors are reported, not treated as process failures.
        if self.error is None or isinstance(self.error, OperationError):
            return 0
        return 1


@dataclass(frozen=True)
class Command:
    handler: Callable
    operand_counts: Tuple[int, ...]
    needs_repository: bool = True


# ========== Rendering ==========

def render_commit(commit: Commit) -> List[str]:
    lines = ["===", f"commit {commit.id}"]
    if commit.is_merge():
        first, second = commit.parents
        lines.append(f"Merge: {first[:7]} {second[:7]}")
    lines.append(f"Date: {commit.timestamp}")
    lines.append(commit.message)
    lines.append("")
    return lines


def render_log(commits: Iterable[Commit]) -> List[str]:
    lines = []
    for commit in commits:
        lines.extend(render_commit(commit))
    return lines


def render_status(report: StatusReport) -> List[str]:
    lines = ["=== Branches ==="]
    lines.extend(f"*{name}" if name == report.head else name for name in report.branches)
    lines.append("")

    lines.append("=== Staged Files ===")
    lines.extend(report.staged)
    lines.append("")

    lines.append("=== Removed Files ===")
    lines.extend(report.removed)
    lines.append("")

    lines.append("=== Modifications Not Staged For Commit ===")
    lines.extend(f"{path} ({change})" for path, change in report.modified)
    lines.append("")

    lines.append("=== Untracked Files ===")
    lines.extend(report.untracked)
    lines.append("")
    return lines


# ========== Handlers ==========

def cmd_init(worktree: Path, operands: Sequence[str]) -> List[str]:
    Repository.init(worktree)
    return []


def cmd_add(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.add(operands[0])
    return []


def cmd_commit(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.commit(operands[0] if operands else "")
    return []


def cmd_rm(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.rm(operands[0])
    return []


def cmd_log(repo: Repository, operands: Sequence[str]) -> List[str]:
    return render_log(repo.log())


def cmd_global_log(repo: Repository, operands: Sequence[str]) -> List[str]:
    return render_log(repo.global_log())


def cmd_find(repo: Repository, operands: Sequence[str]) -> List[str]:
    return repo.find(operands[0])


def cmd_status(repo: Repository, operands: Sequence[str]) -> List[str]:
    return render_status(repo.status())


def cmd_checkout(repo: Repository, operands: Sequence[str]) -> List[str]:
    if len(operands) == 1:
        repo.checkout_branch(operands[0])
    elif len(operands) == 2 and operands[0] == "--":
        repo.checkout_file(operands[1])
    elif len(operands) == 3 and operands[1] == "--":
        repo.checkout_file(operands[2], operands[0])
    else:
        raise OperationError(ErrorKind.INCORRECT_OPERANDS)
    return []


def cmd_branch(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.branch(operands[0])
    return []


def cmd_rm_branch(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.rm_branch(operands[0])
    return []


def cmd_reset(repo: Repository, operands: Sequence[str]) -> List[str]:
    repo.reset(operands[0])
    return []


def cmd_merge(repo: Repository, operands: Sequence[str]) -> List[str]:
    result = repo.merge(operands[0])
    if result.outcome is not MergeOutcome.MERGED:
        return [result.outcome.value]
    if result.has_conflicts:
        return ["Encountered a merge conflict."]
    return []


def cmd_verify(repo: Repository, operands: Sequence[str]) -> List[str]:
    report = repo.verify()
    if report['valid']:
        return [f"OK ({report['commits']} commits, {report['blobs']} blobs)"]
    return list(report['errors'])


COMMANDS: Dict[str, Command] = {
    'init': Command(cmd_init, (0,), needs_repository=False),
    'add': Command(cmd_add, (1,)),
    'commit': Command(cmd_commit, (0, 1)),
    'rm': Command(cmd_rm, (1,)),
    'log': Command(cmd_log, (0,)),
    'global-log': Command(cmd_global_log, (0,)),
    'find': Command(cmd_find, (1,)),
    'status': Command(cmd_status, (0,)),
    'checkout': Command(cmd_checkout, (1, 2, 3)),
    'branch': Command(cmd_branch, (1,)),
    'rm-branch': Command(cmd_rm_branch, (1,)),
    'reset': Command(cmd_reset, (1,)),
    'merge': Command(cmd_merge, (1,)),
    'verify': Command(cmd_verify, (0,)),
}


def dispatch(argv: Sequence[str], worktree: Optional[Path] = None) -> CommandResult:
    """
    Run one command against the repository in worktree (default: cwd).

    Never raises for GitletError; the failure is carried in the result.
    """
    try:
        if not argv:
            raise OperationError(ErrorKind.NO_COMMAND)

        verb, operands = argv[0], list(argv[1:])
        command = COMMANDS.get(verb)
        if command is None:
            raise OperationError(ErrorKind.UNKNOWN_COMMAND)
        if len(operands) not in command.operand_counts:
            raise OperationError(ErrorKind.INCORRECT_OPERANDS)

        worktree = Path(worktree) if worktree is not None else Path.cwd()
        if not command.needs_repository:
            output = command.handler(worktree, operands)
        else:
            with Repository.session(worktree) as repo:
                output = command.handler(repo, operands)

        logger.debug("%s completed", verb)
        return CommandResult(output=list(output))

    except OperationError as e:
        logger.debug("%s rejected: %s", argv[0] if argv else "<none>", e.kind.name)
        return CommandResult(error=e)
    except GitletError as e:
        logger.error("%s failed: %s", argv[0], e)
        return CommandResult(error=e)


def configure_logging(worktree: Path) -> None:
    """Set up stderr logging at the level from the environment or config."""
    config = None
    layout = RepositoryLayout(worktree)
    if layout.config_path.is_file():
        try:
            config = RepositoryConfig.load(layout.config_path)
        except ConfigError:
            # Reported when the command opens the repository.
            config = None

    logging.basicConfig(
        level=resolve_log_level(config),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    worktree = Path.cwd()
    configure_logging(worktree)

    result = dispatch(argv, worktree)
    for line in result.output:
        print(line)
    if result.error is not None:
        print(result.error)
    return result.exit_code
