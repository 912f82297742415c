"""agent-trace: line-level attribution of AI coding tool edits."""
