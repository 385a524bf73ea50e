"""
Article endpoints: listing, lookup, facets and admin CRUD.
"""
