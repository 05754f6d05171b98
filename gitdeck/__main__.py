"""Entry point for running gitdeck as a module."""

from gitdeck.cli import app


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
