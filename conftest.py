"""
Pytest configuration for the product gateway tests
"""

pytest_plugins = ('pytest_asyncio',)
