"""PitchPerfect session orchestration core."""
