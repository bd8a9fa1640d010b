"""
Text analysis package for Texts Service.

Pure functions computing word, character, sentence and paragraph counts
and the longest words of a text. No I/O happens here.
"""

from .analyzer import analyze_text

__all__ = ["analyze_text"]
