"""Client for the OpenAI-compatible grading oracle."""
