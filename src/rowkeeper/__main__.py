"""Entry point for 'python -m rowkeeper' command."""

from rowkeeper.cli import main

if __name__ == "__main__":
    main()
