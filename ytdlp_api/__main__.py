"""Allows `python -m ytdlp_api`."""
from .cli import main

if __name__ == "__main__":
    main()
