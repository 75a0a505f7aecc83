"""Infrastructure layer: upstream HTTP access and caching."""
