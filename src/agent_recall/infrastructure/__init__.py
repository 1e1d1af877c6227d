"""Adapters for the embedding provider and the graph database."""
