"""Application core: configuration loading."""
