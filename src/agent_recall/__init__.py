"""Memory retrieval and context composition for conversational agents."""

__version__ = "0.1.0"
