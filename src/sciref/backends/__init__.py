"""Text-generation backends used by the reference provider."""
