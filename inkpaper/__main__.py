"""
Module entry point for: python -m inkpaper

Allows running the paper tools directly as a module:
    python -m inkpaper build <entries.json> [options]
    python -m inkpaper preview <entries.json> [options]
    python -m inkpaper escape <text>
    python -m inkpaper inspect <strokes.json>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
