"""
Domain package for Texts Service.

Holds the data models and the application services that coordinate
persistence, derived caches and authentication.
"""
