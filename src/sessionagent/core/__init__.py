"""Shared types and configuration for sessionagent."""
