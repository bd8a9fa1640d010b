"""
Application package for the Texts Service.
"""
