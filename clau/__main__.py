"""Allow running clau as ``python -m clau``."""

from clau.cli import main

if __name__ == "__main__":
    main()
