"""Agent/campaign synchronization: name cache, reconciler, persistence."""
