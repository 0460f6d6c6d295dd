"""Command line interface for Benchmarkify."""
