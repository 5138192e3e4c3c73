"""VoiceCart HTTP backend."""
