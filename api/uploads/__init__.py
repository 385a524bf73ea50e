"""
Cover image uploads to object storage.
"""
