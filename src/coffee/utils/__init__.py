"""Input readers and logging helpers."""
