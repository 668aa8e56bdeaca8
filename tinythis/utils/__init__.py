"""
Utilities Package for tinythis.

Helpers that are not specific to encoding itself.

Modules:
    - format_utils.py: Converts durations, file sizes and progress fractions
      into human-readable strings.
    - path_utils.py: Splits pasted text (plain paths, quoted paths, `file://`
      URIs) into file paths.
"""
