"""TeamSync worker: meeting transcripts in, team-dynamics metrics out."""

__version__ = "1.0.0"
