"""
Shared code for the product gateway services
"""
