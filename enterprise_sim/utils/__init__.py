"""Utilities for metric calculation, report writing and logging."""
