"""Exception hierarchy for provisioning failures."""
from typing import List, Optional


class LxcmeshError(Exception):
    """Base class for all lxcmesh errors."""


class ConfigValidationError(LxcmeshError):
    """Configuration is missing a required value or holds an invalid one."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class InventoryQueryError(LxcmeshError):
    """The cluster resource inventory could not be queried or parsed."""


class TemplateLookupError(LxcmeshError):
    """No usable container template could be found or downloaded."""


class StepError(LxcmeshError):
    """An external command backing a provisioning step failed."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)
