"""Core case logic: normalization, validation, filtering and scoring."""
