"""Domain models and rule tables."""
