"""Proxy layer: configuration, model transport, host data and the agent."""
