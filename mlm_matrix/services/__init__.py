"""
Services.

Business logic on top of the repositories.
"""
