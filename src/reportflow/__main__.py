"""Entry point for 'python -m reportflow' command."""

from reportflow.cli import main

if __name__ == "__main__":
    main()
