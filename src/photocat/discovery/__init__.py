"""
PhotoCat - Discovery

Walking the library, writing catalog records, and orchestrating syncs.
"""
