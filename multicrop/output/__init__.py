"""Writing detected photos to disk."""
