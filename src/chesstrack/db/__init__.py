"""Stats persistence backends."""
