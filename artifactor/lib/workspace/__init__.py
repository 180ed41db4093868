"""Workspace -- project membership, checkout, and output placement.

The output manager only talks to the abstract capabilities in ``base``;
``InMemoryWorkspace`` is the implementation used by the command line.
"""

from artifactor.lib.workspace.base import (
    BASE_ITEM_TYPES,
    Checkout,
    CheckoutOutcome,
    Container,
    Workspace,
    WorkspaceItem,
    WorkspaceProject,
    container_directory,
)
from artifactor.lib.workspace.checkout import AllowAllCheckout, ScriptedCheckout, WritableFileCheckout
from artifactor.lib.workspace.memory import InMemoryWorkspace
from artifactor.lib.workspace.persistence import load_workspace, save_workspace
from artifactor.lib.workspace.placement import WorkspacePlacement

__all__ = [
    "BASE_ITEM_TYPES",
    "Checkout",
    "CheckoutOutcome",
    "Container",
    "Workspace",
    "WorkspaceItem",
    "WorkspaceProject",
    "container_directory",
    "AllowAllCheckout",
    "ScriptedCheckout",
    "WritableFileCheckout",
    "InMemoryWorkspace",
    "load_workspace",
    "save_workspace",
    "WorkspacePlacement",
]
