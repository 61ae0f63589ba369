"""FormIQ: goal intake, clarifying focus questions and generated project roadmaps."""

__version__ = "0.1.0"
