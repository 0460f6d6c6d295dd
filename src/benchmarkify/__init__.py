"""Benchmarkify - adaptive throughput benchmarking for cost-metered GraphQL APIs."""

__version__ = "0.1.0"
