"""
Integration tests for the provider layer.

These run the full resolve -> build -> generate path with SDK clients mocked.
"""
