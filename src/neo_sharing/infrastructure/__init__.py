"""Infrastructure implementations of the core protocols."""
