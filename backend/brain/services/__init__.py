"""Orchestration services and data-source agents."""
