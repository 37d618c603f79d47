"""Server-side delivery of lifelog letters."""
