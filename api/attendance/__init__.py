"""
Event registration and SMS confirmation endpoints.
"""
