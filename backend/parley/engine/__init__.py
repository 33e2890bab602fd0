"""Game-side engine pieces used by the conversation system."""
