"""Batch execution: ordering, placeholder resolution and dry runs."""
