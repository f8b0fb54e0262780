"""Search index engine and provider registry."""
