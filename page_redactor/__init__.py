"""
Page Redactor - OCR-driven redaction of rendered PDF pages.

Each page is rasterized, word regions are detected and recognized, and
every region whose text matches a single user-supplied pattern is
painted over before the page is exported as a PNG image.
"""

__version__ = "0.1.0"
