"""One-shot jobs for the media bridge."""
