"""Score keeping and settlement for Xì Dách sessions."""
