"""Command line interface for mnistnet."""
