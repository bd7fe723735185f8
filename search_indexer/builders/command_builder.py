"""
Command Shard Builder

Hands the output directory to an external shard build/merge tool by running it as
a subprocess.
"""

import logging
import shlex
import subprocess

from search_indexer.framework import ShardBuilder, ShardBuildParams

logger = logging.getLogger(__name__)


class CommandShardBuilder(ShardBuilder):
    """ShardBuilder that runs an external command.

    The command is called as:
        <command> --input-dir DIR --reducers N --max-segments N [--shards N] [--fanout N]
    """

    def __init__(self, command: str | list[str], timeout: float | None = None, cwd: str | None = None):
        """Initialize command shard builder.

        Args:
            command: Executable and leading arguments (a string is split shell-style)
            timeout: Seconds before the build is abandoned (no limit if None)
            cwd: Working directory for the command
        """
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.command:
            raise ValueError("CommandShardBuilder requires a command")
        self.timeout = timeout
        self.cwd = cwd

    def build_args(self, input_dir: str, params: ShardBuildParams) -> list[str]:
        args = [
            *self.command,
            "--input-dir",
            input_dir,
            "--reducers",
            str(params.reducers),
            "--max-segments",
            str(params.max_segments),
        ]
        if params.shards is not None:
            args += ["--shards", str(params.shards)]
        if params.fanout is not None:
            args += ["--fanout", str(params.fanout)]
        return args

    def build(self, input_dir: str, params: ShardBuildParams) -> int:
        args = self.build_args(input_dir, params)
        logger.info(f"Running shard builder: {shlex.join(args)}")

        try:
            result = subprocess.run(args, capture_output=True, text=True, timeout=self.timeout, cwd=self.cwd)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Shard builder could not be run: {e}")
            return 1

        if result.stdout:
            logger.info(f"Shard builder output: {result.stdout.strip()}")
        if result.returncode != 0:
            logger.error(f"Shard builder failed: {result.stderr.strip()}")
        return result.returncode
