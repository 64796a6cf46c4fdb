"""Push gateway providers."""
