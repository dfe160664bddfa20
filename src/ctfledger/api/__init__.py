"""Read-only HTTP query API."""
