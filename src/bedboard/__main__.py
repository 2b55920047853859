"""Allow running as ``python -m bedboard``."""

from bedboard.cli import main

if __name__ == "__main__":
    main()
