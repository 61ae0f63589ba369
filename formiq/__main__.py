# formiq/__main__.py
"""Entry point for `python -m formiq`."""

from formiq.cli import app

if __name__ == "__main__":
    app()
