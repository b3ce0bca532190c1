"""TrackDeck - follow artists and games across platforms and get new-release alerts."""

__version__ = "0.1.0"
