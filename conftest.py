"""Root-level conftest.py so the repo root is importable when running tests
from a checkout without installing the package first."""
