#!/usr/bin/env python3
"""
Page Redactor CLI

Usage:
    python redact.py --pdf-path scan.pdf --output-folder ./out/ --redact-pattern 'secret'
"""

from page_redactor.cli import main


if __name__ == "__main__":
    main()
