"""Allow ``python -m spritestudio``."""

from spritestudio.cli import main

if __name__ == "__main__":
    main()
