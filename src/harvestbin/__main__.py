"""Module entry point for `python -m harvestbin`."""

from harvestbin.cli.main import main

if __name__ == "__main__":
    main()
