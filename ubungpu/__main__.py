from .main import entrypoint

raise SystemExit(entrypoint())
