"""
Core modules for Utility Bill.

This package contains usage fetching, interval lookup, cost calculation
and the billing orchestration that ties them together.
"""
