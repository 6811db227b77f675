"""Human-in-the-loop access requests."""

from .services import AccessRequestWorkflow

__all__ = ["AccessRequestWorkflow"]
