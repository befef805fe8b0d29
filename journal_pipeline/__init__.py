"""Journal pipeline: audio transcription jobs and daily view materialization."""

__version__ = "0.1.0"
