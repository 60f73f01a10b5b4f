"""
Folio - Main Entry Point
========================
Run this file to start the interactive statement reconciler.
Usage: python main.py
"""

from folio.cli import CLI, setup_logging


def main():
    setup_logging()
    cli = CLI()
    cli.run()


if __name__ == "__main__":
    main()
