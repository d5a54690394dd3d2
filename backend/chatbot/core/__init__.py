"""
Core application modules.
Contains logging, metrics and request middleware shared by every route.
"""
