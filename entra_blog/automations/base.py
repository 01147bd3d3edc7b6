"""
Base automation class — Abstract interface for the one-shot example scripts.
Each automation is a linear sequence of lookups and at most a few writes.
The first error stops the run.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..graph.client import GraphClient
from ..safety.guardian import WriteGuardian

logger = logging.getLogger("entra_blog.automations")

SUCCEEDED = "succeeded"
SKIPPED = "skipped"
FAILED = "failed"


class AutomationError(Exception):
    """Raised by an automation when a lookup or precondition fails."""
    pass


class AutomationResult:
    """Standardized result of an automation run."""

    def __init__(self, automation_name: str):
        self.automation_name = automation_name
        self.status: str = SUCCEEDED
        self.steps: list[str] = []
        self.changes: list[dict[str, Any]] = []
        self.error: Optional[str] = None
        self.what_if: bool = False
        self.metadata: dict[str, Any] = {
            "automation": automation_name,
            "started_at": None,
            "completed_at": None,
            "duration_seconds": 0,
        }

    def add_step(self, message: str):
        self.steps.append(message)
        logger.info(f"[{self.automation_name}] {message}")

    def add_change(self, action: str, target: str, **details: Any):
        self.changes.append({"action": action, "target": target, **details})
        verb = "Planned" if self.what_if else "Done"
        logger.info(f"[{self.automation_name}] {verb}: {action} {target}")

    def fail(self, error: str):
        self.status = FAILED
        self.error = error
        logger.error(f"[{self.automation_name}] {error}")

    @property
    def exit_code(self) -> int:
        return 1 if self.status == FAILED else 0

    def to_dict(self) -> dict:
        return {
            "automation": self.automation_name,
            "status": self.status,
            "what_if": self.what_if,
            "steps": self.steps,
            "changes": self.changes,
            "error": self.error,
            "metadata": self.metadata,
        }


class BaseAutomation(ABC):
    """
    Abstract base class for all automations.

    Subclasses implement run() as a straight sequence of API calls.
    The base class provides:
      - Declared write endpoints registered with the guardian
      - Timing and metadata
      - Fail-fast error handling: the first exception ends the run
    """

    name: str = "base"
    description: str = "Base automation"
    # Regexes of the write endpoints this automation may call
    write_endpoints: list[str] = []

    def __init__(self, graph: GraphClient, guardian: WriteGuardian):
        self.graph = graph
        self.guardian = guardian
        for pattern in self.write_endpoints:
            self.guardian.allow(pattern)

    @property
    def what_if(self) -> bool:
        return self.guardian.what_if

    def execute(self) -> AutomationResult:
        """Run the automation with timing and fail-fast error handling."""
        result = AutomationResult(self.name)
        result.what_if = self.what_if
        result.metadata["started_at"] = time.time()
        logger.info(f"[{self.name}] Starting...")

        try:
            self.run(result)
            if result.status == SUCCEEDED and not result.changes:
                result.status = SKIPPED
        except Exception as e:
            result.fail(f"{type(e).__name__}: {e}")
            logger.debug(f"[{self.name}] Run failed", exc_info=True)

        result.metadata["completed_at"] = time.time()
        result.metadata["duration_seconds"] = round(
            result.metadata["completed_at"] - result.metadata["started_at"], 2
        )
        logger.info(
            f"[{self.name}] Finished with status {result.status} in "
            f"{result.metadata['duration_seconds']}s"
        )
        return result

    @abstractmethod
    def run(self, result: AutomationResult):
        """
        Implement the automation. Record progress via result.add_step()
        and writes via result.add_change(); raise to abort.
        """
        raise NotImplementedError
