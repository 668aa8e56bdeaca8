"""
Terminal user interface (textual).

- app.py: `TinythisApp`, which renders a SessionController and maps keys and
  pasted paths to its events.
- screens.py: the modal path prompt.
"""
