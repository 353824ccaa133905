"""Image loading and downscaling."""
