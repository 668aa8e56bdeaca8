"""
Services Package for tinythis.

This package contains the "service layer": the classes that do the work behind
the session and the command-line runner. Pipelines decide what to run and
when; services know how to run it.

- **Encoding (`EncodeJob`, `JobQueue`):**
  A job drives one FFmpeg process for one input file and tracks its state and
  progress. The queue orders the jobs, runs at most one at a time, and is the
  only place where job state changes.

- **Encoder output (`progress`):**
  Parses the merged FFmpeg output stream into typed progress events.

- **Output naming (`output_paths`):**
  Resolves `<stem>.tinythis.<preset>.mp4` against the filesystem, numbering
  around existing files.

- **Encoder lookup (`EncoderLocator`):**
  Finds the ffmpeg and ffprobe executables.

- **Logging (`FailureLog`, sink setup):**
  Configures loguru for console or file output and writes plain-text reports
  for failed jobs.
"""
