"""Allow ``python -m remaimber``."""

from remaimber.cli.commands import app

if __name__ == "__main__":
    app()
