"""Building blocks of the diagnosis pipeline."""
