"""
Core upload protocol: domain models, interfaces and services.
"""
