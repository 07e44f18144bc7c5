"""Use cases behind the API and scheduler entrypoints."""
