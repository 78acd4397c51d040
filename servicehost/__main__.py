"""Entry point for running servicehost as a module."""

from servicehost.cli.commands import app

if __name__ == "__main__":
    app()
