"""Entry point for the Wake-on-LAN sender.
Run: python main.py [mac ...]  (no arguments reads addresses from stdin)
"""
import sys

from wolsend.cli import main

if __name__ == "__main__":
    sys.exit(main())
