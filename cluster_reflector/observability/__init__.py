"""Logging and metrics for cluster-reflector."""
