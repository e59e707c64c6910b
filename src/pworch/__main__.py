"""Allow ``python -m pworch``."""

from pworch.cli.main import cli

if __name__ == "__main__":
    cli()
