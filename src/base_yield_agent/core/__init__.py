"""Core runtime: agent registry, chat agent, and session history."""
