"""
This package contains the domain model of tinythis.

It holds the concepts the rest of the application is built on and has no
knowledge of processes, queues or terminals.

Modules:
    exceptions.py: The error taxonomy (validation, resource, job-level errors).
    media.py: `InputFile`, a validated source file, and duration parsing.
    presets.py: The `Preset` and `AcceleratorMode` enums and the fixed
                preset table that maps each pair to encoder arguments.
"""
