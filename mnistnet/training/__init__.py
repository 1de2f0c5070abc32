"""Training loop, losses, metrics and pipeline assembly."""
