"""Backport orchestration: git and forge adapters, engine and CI pipeline."""
