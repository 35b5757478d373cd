"""Step results and the provisioning report."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class StepResult:
    """Outcome of a single provisioning step.

    Fatal steps abort the run on failure; advisory ones are recorded
    and the run carries on.
    """
    name: str
    ok: bool
    fatal: bool = True
    detail: str = ""


@dataclass
class ProvisionReport:
    """Everything a provisioning run did, in order."""
    container_name: str
    container_id: Optional[int] = None
    container_ip: Optional[str] = None
    ssh_port: Optional[int] = None
    vlan_id: Optional[int] = None
    template: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)
    aborted: bool = False

    def record(self, step: StepResult) -> StepResult:
        self.steps.append(step)
        return step

    @property
    def failed_steps(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok]

    @property
    def warnings(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok and not s.fatal]

    @property
    def succeeded(self) -> bool:
        """True only when the run finished and every step succeeded."""
        return not self.aborted and not self.failed_steps

    @property
    def status(self) -> str:
        if self.aborted:
            return "failed"
        if self.failed_steps:
            return "completed with warnings"
        return "complete"
