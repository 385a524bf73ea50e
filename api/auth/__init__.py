"""
Shared-secret check for privileged routes.
"""
