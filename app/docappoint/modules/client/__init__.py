"""
Client pages, mounted at /client.
"""
