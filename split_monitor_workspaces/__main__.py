"""Entry point for the split-monitor-workspaces daemon when run as a module."""

from .daemon import main

if __name__ == "__main__":
    main()
