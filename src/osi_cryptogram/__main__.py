"""Main entry point for the osi_cryptogram package."""
from osi_cryptogram.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()
