"""Aggregation services and run configuration for the AD computer report."""
