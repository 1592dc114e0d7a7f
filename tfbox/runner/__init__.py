"""Container run for a single Terraform invocation.

- **spec**: Run spec, bind mounts, and result models
- **orchestrator**: Create -> start -> (logs || wait) -> remove
"""

from tfbox.runner.orchestrator import run_container
from tfbox.runner.spec import BindMount, ContainerRunSpec, RunResult, RunState

__all__ = ["BindMount", "ContainerRunSpec", "RunResult", "RunState", "run_container"]
