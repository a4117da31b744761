"""Familiar: a chat-model agent that reads host application data through text tool calls."""

__version__ = "0.2.0"
