"""
Main entry point for tinythis when run from a source checkout.

    python main.py [preset] FILE...
    python main.py

Installed copies use the `tinythis` console script instead; both call
`tinythis.cli.main`.
"""
import sys

from tinythis.cli import main

if __name__ == "__main__":
    sys.exit(main())
