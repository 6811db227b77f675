"""Access request services."""

from .access_request_workflow import AccessRequestWorkflow

__all__ = ["AccessRequestWorkflow"]
