"""Usage domain: per-call token charging."""
