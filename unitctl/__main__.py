"""Allow running unitctl with ``python -m unitctl``."""

from .cli import main

if __name__ == "__main__":
    main()
