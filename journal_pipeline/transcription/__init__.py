"""Audio transcription pipeline: collaborators, error taxonomy and worker."""
