"""
Main entry point for the ytdlp-api server.

Equivalent to `python -m ytdlp_api`; e.g. `python main.py server run`.
"""

from ytdlp_api.cli import main

if __name__ == "__main__":
    main()
