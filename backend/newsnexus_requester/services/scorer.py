"""
Downstream semantic scorer launch.

The scorer is a separate program that rates newly stored articles. It runs
once after all query rows are ingested; its output is captured into this
process's logs.
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Protocol

import structlog

from newsnexus_requester.config import Settings
from newsnexus_requester.core.errors import ConfigError, ScorerError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScorerParams:
    """Paths and names handed to the scorer process."""
    command: str
    scorer_path: str
    child_name: str
    scorer_dir: str
    keywords_file: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScorerParams":
        """
        Raises:
            ConfigError: if any of the scorer settings is missing
        """
        required = {
            "PATH_AND_FILENAME_TO_SEMANTIC_SCORER": settings.semantic_scorer_path,
            "NAME_CHILD_PROCESS_SEMANTIC_SCORER": settings.semantic_scorer_child_name,
            "PATH_TO_SEMANTIC_SCORER_DIR": settings.semantic_scorer_dir,
            "PATH_TO_SEMANTIC_SCORER_KEYWORDS_EXCEL_FILE": settings.semantic_scorer_keywords_file,
        }
        for env_var, value in required.items():
            if not value:
                raise ConfigError(f"Missing {env_var} env var.")

        return cls(
            command=settings.semantic_scorer_command,
            scorer_path=settings.semantic_scorer_path,
            child_name=settings.semantic_scorer_child_name,
            scorer_dir=settings.semantic_scorer_dir,
            keywords_file=settings.semantic_scorer_keywords_file,
        )

    def child_env(self) -> dict[str, str]:
        return {
            **os.environ,
            "NAME_APP": self.child_name,
            "PATH_TO_SEMANTIC_SCORER_DIR": self.scorer_dir,
            "PATH_TO_SEMANTIC_SCORER_KEYWORDS_EXCEL_FILE": self.keywords_file,
        }


@dataclass(frozen=True)
class ScorerOutcome:
    return_code: int
    stdout: str
    stderr: str


class ScorerLauncher(Protocol):
    """Anything that can run the scorer once."""

    async def launch(self, params: ScorerParams) -> ScorerOutcome:
        ...


class SubprocessScorerLauncher:
    """Runs the scorer as a child process and waits for it to exit."""

    async def launch(self, params: ScorerParams) -> ScorerOutcome:
        """
        Raises:
            ScorerError: if the process cannot be started or exits non-zero
        """
        logger.info("Starting child process", scorer_path=params.scorer_path)

        try:
            process = await asyncio.create_subprocess_exec(
                params.command,
                params.scorer_path,
                env=params.child_env(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await process.communicate()
        except OSError as e:
            logger.error("Error executing child process", error=str(e))
            raise ScorerError(f"Failed to start semantic scorer: {e}") from e

        outcome = ScorerOutcome(
            return_code=process.returncode,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )

        if outcome.stderr:
            logger.error("Child process stderr", stderr=outcome.stderr)
        if outcome.stdout:
            logger.info("Child process output", stdout=outcome.stdout)

        if outcome.return_code != 0:
            logger.error("Error executing child process", return_code=outcome.return_code)
            raise ScorerError(f"Semantic scorer exited with status {outcome.return_code}")

        logger.info("Child process finished")
        return outcome
