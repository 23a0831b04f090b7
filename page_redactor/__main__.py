"""Entry point for ``python -m page_redactor``."""

from page_redactor.cli import main


if __name__ == "__main__":
    main()
