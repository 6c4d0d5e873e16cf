"""Management commands for founders operating timelines."""
