"""
Infrastructure layer: configuration, logging, HTTP clients and local
session persistence.
"""
