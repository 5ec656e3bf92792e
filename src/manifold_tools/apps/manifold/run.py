"""CLI entry point for the Manifold trading bot app.

All command logic lives in the cli subpackage.
"""

from manifold_tools.apps.manifold.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the Manifold CLI application."""
    app()


if __name__ == "__main__":
    main()
