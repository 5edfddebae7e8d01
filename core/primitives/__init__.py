"""
Custody Primitive Layer
=========================
Reusable, storage-free building blocks shared by engines.
"""

from core.primitives.workflow import WorkflowDefinition

__all__ = ["WorkflowDefinition"]
