"""Refresher service package.

Re-exports the public symbols::

    from instances_api.services.refresher import Refresher, RefresherConfig, reconcile
"""

from .configs import CycleTimeoutsConfig, RefresherConfig
from .service import Refresher
from .utils import CycleOutcome, ProbeCollection, reconcile


__all__ = [
    "CycleOutcome",
    "CycleTimeoutsConfig",
    "ProbeCollection",
    "Refresher",
    "RefresherConfig",
    "reconcile",
]
