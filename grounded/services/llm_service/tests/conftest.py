"""Test plumbing for the transformers backend tests.

`transformers` exposes `pipeline` lazily; its first real import replaces
whatever `unittest.mock.patch("transformers.pipeline")` installed. Resolve
the attribute once up front so the tests' patches take effect.
"""
from transformers import pipeline  # noqa: F401
