"""
Module entry point for: python -m examparser

Allows running the CLI directly as a module:
    python -m examparser parse <file> [options]
    python -m examparser quiz <file> [options]
    python -m examparser export <file> [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
