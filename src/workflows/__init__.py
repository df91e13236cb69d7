"""End-to-end workflows built on the pipeline components."""
