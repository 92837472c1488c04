"""Main entry point for the chapterly package."""

from chapterly.cli import app


def main():
    """Run the chapterly command-line interface."""
    app()


if __name__ == "__main__":
    main()
