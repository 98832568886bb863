"""Explicit provisioning workflow concepts.

- The pipeline state machine (states and allowed transitions)
- Per-stage outcomes aggregated into a run report
"""

__all__: list[str] = []
