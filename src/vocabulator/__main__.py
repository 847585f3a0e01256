"""Main entry point for ``python -m vocabulator``."""
from vocabulator.cli import main

if __name__ == "__main__":
    main()
