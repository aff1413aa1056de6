"""Module entry point for running scripts.snippets as a package.

Allows: python -m scripts.snippets <command>
"""

import sys

from scripts.snippets.cli import main

if __name__ == '__main__':
    sys.exit(main())
