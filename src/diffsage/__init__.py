"""diffsage: streaming AI code-review orchestration."""
