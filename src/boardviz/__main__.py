"""Allow running boardviz with `python -m boardviz`."""

from boardviz.cli.main import cli

if __name__ == "__main__":
    cli()
