"""Allow ``python -m specops``."""

from specops.main import cli

if __name__ == "__main__":
    cli()
