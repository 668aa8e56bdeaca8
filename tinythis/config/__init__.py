"""
Configuration Package for tinythis.

This package centralizes the static settings of the application and the
small amount of state that is persisted between runs.

This package includes:
- Application directory layout, logging format and queue timing (`common`).
- Accepted input extensions, output naming and per-preset codec parameters (`video`).
- The persisted user options such as the last GPU choice (`options`).
"""
