"""Main entry point for poker-quiz CLI."""

from poker_quiz.cli.app import app


def main():
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    main()
