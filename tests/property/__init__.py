# tests/property/__init__.py
"""Property-based tests for logship.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of: the buffer never loses or
reorders events, rendering is deterministic, and summary totals add up.
"""
