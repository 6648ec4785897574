"""Git subprocess runner for git-worktree-keeper."""

import os
from typing import Optional, Sequence, Union

import git

from git_worktree_keeper.constants import DEFAULT_COMMAND_TIMEOUT, NETWORK_COMMAND_TIMEOUT
from git_worktree_keeper.exceptions import CommandFailedError, command_failed
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class GitRunner:
    """Run git commands in a working directory and return their stdout.

    Every call carries a timeout. A command that times out is killed and
    reported like any other non-zero exit.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        network_timeout: float = NETWORK_COMMAND_TIMEOUT,
    ):
        self.timeout = timeout
        self.network_timeout = network_timeout

    @classmethod
    def from_config(cls, config) -> "GitRunner":
        """Build a runner using the timeouts of a Config (or dict)."""
        return cls(
            timeout=config.get("command_timeout", DEFAULT_COMMAND_TIMEOUT),
            network_timeout=config.get("network_timeout", NETWORK_COMMAND_TIMEOUT),
        )

    def run(
        self,
        args: Sequence[str],
        cwd: PathLike,
        timeout: Optional[float] = None,
        network: bool = False,
    ) -> str:
        """Run `git <args>` in cwd.

        Args:
            args: Arguments after the `git` executable
            cwd: Working directory for the command
            timeout: Seconds before the process is killed (defaults by command type)
            network: Use the network timeout and disable credential prompts

        Returns:
            Captured standard output

        Raises:
            CommandFailedError: On non-zero exit, timeout, or missing git/cwd
            NetworkError: The failure shows the remote could not be reached
        """
        args = [str(arg) for arg in args]
        cwd = os.fspath(cwd)
        if timeout is None:
            timeout = self.network_timeout if network else self.timeout
        env = {"GIT_TERMINAL_PROMPT": "0"} if network else None

        logger.debug(f"git {' '.join(args)} (cwd={cwd}, timeout={timeout}s)")
        if not os.path.isdir(cwd):
            raise CommandFailedError(
                args, 128, f"fatal: cannot change to '{cwd}': No such file or directory", cwd=cwd
            )

        try:
            status, stdout, stderr = git.Git(cwd).execute(
                ["git", *args],
                with_extended_output=True,
                with_exceptions=False,
                kill_after_timeout=timeout,
                env=env,
            )
        except git.exc.GitCommandNotFound as e:
            raise CommandFailedError(args, 127, str(e), cwd=cwd) from e

        if status != 0:
            error = command_failed(args, status, stderr, stdout, cwd=cwd)
            logger.debug(str(error))
            raise error

        return stdout
