"""Infrastructure adapters behind core protocols."""
