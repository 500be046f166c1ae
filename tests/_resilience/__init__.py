"""Resilience and error handling tests.

This package contains tests for the conflict retry loop, per-attempt
timeouts and concurrent command executions racing for the same
aggregate version.
"""
