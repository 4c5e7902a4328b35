"""Core mapping, query derivation and caching logic."""
