"""
Pipeline services.
"""
