import json
import logging
from pathlib import Path

from rbac_chat.errors import PersistenceError
from rbac_chat.ir.policy import Policy
from rbac_chat.validation.policy_validator import PolicyValidationReport

logger = logging.getLogger(__name__)

POLICY_FILE = "final_policy.json"
REPORT_FILE = "validation_report.json"


class ArtifactWriter:
    """Writes the committed policy and its validation report as JSON files."""

    def __init__(self, artifacts_dir):
        self.artifacts_dir = Path(artifacts_dir)

    def write(self, policy: Policy, report: PolicyValidationReport) -> None:
        try:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)
            self._dump(POLICY_FILE, policy.to_dict())
            self._dump(REPORT_FILE, report.to_dict())
        except OSError as e:
            raise PersistenceError(f"Could not write artifacts: {e}") from e

    def write_report(self, report: PolicyValidationReport) -> None:
        try:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)
            self._dump(REPORT_FILE, report.to_dict())
        except OSError as e:
            raise PersistenceError(f"Could not write validation report: {e}") from e

    def clear(self) -> None:
        for name in (POLICY_FILE, REPORT_FILE):
            path = self.artifacts_dir / name
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise PersistenceError(f"Could not remove {path}: {e}") from e
        logger.info("Artifacts cleared in %s", self.artifacts_dir)

    def _dump(self, name: str, payload: dict) -> None:
        with open(self.artifacts_dir / name, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
