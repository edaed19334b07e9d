"""Subtitle translation: remote client, batching, caching and scheduling."""
