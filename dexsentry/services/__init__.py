"""Services package - orchestration around the decision engine"""

from dexsentry.services.entry_coordinator import EntryCoordinator, EntryDecision

__all__ = ["EntryCoordinator", "EntryDecision"]
