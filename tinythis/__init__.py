"""
tinythis: a preset-driven video compression front-end for FFmpeg.

The package turns a general-purpose transcoder into a single-purpose tool:
pick files, pick one of three presets (optionally GPU accelerated), and let the
queue drive FFmpeg one file at a time. The same queue backs both the one-shot
command line and the interactive terminal session.

Subpackages:
    config: Static settings and the user's YAML configuration/options.
    domain: Presets, input files and the exception taxonomy.
    services: Output naming, encode jobs, the job queue and the encoder locator.
    pipeline: The interactive session state machine and the CLI runner.
    ui: The textual front-end that renders a session.
    utils: Formatting and path parsing helpers.
"""

__version__ = "0.4.0"
