"""AI coaching narration with deterministic local fallbacks."""

from daysense.narration.service import NarrationBackend, NarrationService, create_backend

__all__ = ["NarrationBackend", "NarrationService", "create_backend"]
