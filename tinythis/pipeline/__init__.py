"""
This package contains the two ways tinythis drives a JobQueue.

- session.py: `SessionController`, the interactive state machine (browsing and
  compressing) behind the terminal UI.
- runner.py: `CLIRunner`, which compresses the files given on the command line
  and exits with a status code.

Both build their queue through the same validation path, so a file accepted by
one is accepted by the other.
"""
