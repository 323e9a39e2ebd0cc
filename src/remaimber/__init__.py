"""remaimber - practice question banks with asynchronous LLM grading."""

__version__ = "0.1.0"
